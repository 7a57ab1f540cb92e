"""Failure taxonomy and the legacy error envelope."""

import asyncio
import logging

import httpx

from vodbridge.models import ErrorDetail, ErrorInfo, ErrorKind, LegacyResponse

logger = logging.getLogger(__name__)


class VodBridgeError(Exception):
    """Base exception for vodbridge errors."""

    kind = ErrorKind.UNKNOWN


class ParamValidationError(VodBridgeError):
    """Raised when client-supplied input fails a contract."""

    kind = ErrorKind.VALIDATION


class ProviderError(VodBridgeError):
    """Raised when the upstream provider call fails."""

    kind = ErrorKind.UPSTREAM
    retryable = True

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ProviderHTTPError(ProviderError):
    """Raised when the provider answers with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = ""):
        message = f"Provider request failed: {status_code}"
        if reason:
            message += f" {reason}"
        super().__init__(message, status_code=status_code)


class ProviderResponseError(ProviderError):
    """Raised when a 2xx body reports an error, is malformed or is empty."""


class ProviderPayloadError(ProviderResponseError):
    """Raised when a 2xx body does not have the expected shape; never retried."""

    retryable = False


class ProviderTimeoutError(ProviderError):
    """Raised when the provider does not answer within the timeout."""

    kind = ErrorKind.TIMEOUT


class ProviderConnectionError(ProviderError):
    """Raised when the provider cannot be reached at all."""

    kind = ErrorKind.NETWORK


def status_of(exc: BaseException) -> int | None:
    """HTTP status carried by an exception, if any."""
    if isinstance(exc, ProviderError):
        return exc.status_code
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


class ErrorHandler:
    """Classifies failures and renders them in the legacy error envelope.

    Stateless; one instance can be shared by every request.
    """

    _TIMEOUT_TYPES = (
        ProviderTimeoutError,
        httpx.TimeoutException,
        asyncio.TimeoutError,
        TimeoutError,
        asyncio.CancelledError,
    )
    _NETWORK_TYPES = (
        ProviderConnectionError,
        httpx.NetworkError,
        ConnectionError,
    )

    def classify(self, exc: BaseException) -> ErrorDetail:
        """Map any exception onto the fixed taxonomy.

        Priority: validation, timeout/cancellation, network, 429, other
        4xx, 5xx, embedded provider errors, then unknown.
        """
        if isinstance(exc, ParamValidationError):
            return self.validation(str(exc))

        if isinstance(exc, self._TIMEOUT_TYPES):
            return ErrorDetail(
                kind=ErrorKind.TIMEOUT,
                message="Request timed out, please retry later",
            )

        if isinstance(exc, self._NETWORK_TYPES):
            return ErrorDetail(
                kind=ErrorKind.NETWORK,
                message="Network connection failed",
            )

        status = status_of(exc)
        if status == 429:
            return ErrorDetail(
                kind=ErrorKind.RATE_LIMITED,
                message="Too many requests, please retry later",
            )
        if status is not None and 400 <= status < 500:
            return ErrorDetail(
                kind=ErrorKind.UPSTREAM,
                message="Bad request",
                details={"status": status},
            )
        if status is not None and status >= 500:
            return ErrorDetail(
                kind=ErrorKind.UPSTREAM,
                message="Upstream server error",
                details={"status": status},
            )

        if isinstance(exc, ProviderError):
            return ErrorDetail(kind=ErrorKind.UPSTREAM, message=str(exc))

        return ErrorDetail(
            kind=ErrorKind.UNKNOWN,
            message="Unknown error, please retry later",
            details={"originalError": str(exc)},
        )

    @staticmethod
    def validation(message: str, details: object = None) -> ErrorDetail:
        return ErrorDetail(kind=ErrorKind.VALIDATION, message=message, details=details)

    @staticmethod
    def render(detail: ErrorDetail, limit: int = 0) -> LegacyResponse:
        """Build the error envelope: code 0, no records, error metadata attached."""
        return LegacyResponse(
            code=0,
            msg=detail.message,
            page=1,
            pagecount=0,
            limit=limit,
            total=0,
            records=[],
            error=ErrorInfo(
                type=detail.kind,
                timestamp=detail.timestamp,
                details=detail.details,
            ),
        )

    @staticmethod
    def log(detail: ErrorDetail, context: str) -> None:
        """Log a classified error with its operation context."""
        logger.error(
            "[%s] %s: %s%s",
            context,
            detail.kind.value,
            detail.message,
            f" ({detail.details})" if detail.details is not None else "",
        )
