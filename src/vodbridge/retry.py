"""Retry with exponential backoff for upstream provider calls.

One abstraction shared by every call site; each site picks its own budget.

Example:
    handler = RetryHandler(max_attempts=3, base_delay=1.0)
    page = await handler.call(lambda: provider.search("space"))

Backoff schedule (base_delay=1.0, backoff_factor=2.0):
    Attempt 1: immediate
    Attempt 2: 1s delay
    Attempt 3: 2s delay
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from vodbridge.errors import status_of
from vodbridge.models import ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """Transient failures are retried; client and validation errors are not.

    429 counts as transient (provider throttling), every other 4xx fails fast.
    Malformed provider payloads are deterministic and fail fast too.
    """
    if getattr(exc, "kind", None) == ErrorKind.VALIDATION:
        return False
    if not getattr(exc, "retryable", True):
        return False
    status = status_of(exc)
    if status is not None and 400 <= status < 500 and status != 429:
        return False
    return True


@dataclass(frozen=True)
class RetryHandler:
    """Re-runs an async operation until it succeeds or the budget is spent."""

    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    backoff_factor: float = 2.0

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before the given 1-based attempt (0 for the first)."""
        if attempt < 2:
            return 0.0
        return self.base_delay * self.backoff_factor ** (attempt - 2)

    async def call(self, operation: Callable[[], Awaitable[T]], name: str = "operation") -> T:
        """Run ``operation``, retrying transient failures.

        Raises:
            Exception: The last error once ``max_attempts`` is exhausted, or
                the first non-retryable error immediately.
        """
        attempts = max(1, self.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except Exception as e:
                if attempt >= attempts:
                    if attempts > 1:
                        logger.warning("%s failed after %d attempts: %s", name, attempts, e)
                    raise
                if not is_retryable(e):
                    raise

                delay = self.delay_before(attempt + 1)
                logger.info(
                    "%s attempt %d failed: %s. Retrying in %.1fs...",
                    name, attempt, e, delay,
                )
                await asyncio.sleep(delay)

        raise RuntimeError("unreachable")  # pragma: no cover


SEARCH_RETRY = RetryHandler(max_attempts=3, base_delay=1.0)
DETAIL_RETRY = RetryHandler(max_attempts=2, base_delay=0.5)
