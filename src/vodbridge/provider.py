"""Upstream video provider client over httpx."""

import asyncio
import logging
import re
from typing import Any

import httpx
from pydantic import ValidationError

from vodbridge.config import settings
from vodbridge.errors import (
    ParamValidationError,
    ProviderConnectionError,
    ProviderHTTPError,
    ProviderPayloadError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from vodbridge.models import Order, RemovedVideo, UpstreamPage, UpstreamVideo

logger = logging.getLogger(__name__)

_VIDEO_ID = re.compile(r"[A-Za-z0-9]+")


class ProviderClient:
    """Talks to the upstream content API: keyword search and lookup by id.

    Every call is bounded by ``timeout`` seconds; the pending request is
    cancelled when the budget runs out. All transport and protocol failures
    surface as ``ProviderError`` subclasses.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        max_per_page: int | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._base_url = (base_url or settings.provider_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.provider_timeout
        self._max_per_page = max_per_page or settings.provider_max_per_page
        self._headers = {
            "User-Agent": user_agent or settings.provider_user_agent,
            "Accept": "application/json",
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)

    @property
    def max_per_page(self) -> int:
        return self._max_per_page

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def search(
        self,
        keyword: str,
        page: int = 1,
        per_page: int = 60,
        order: Order = Order.LATEST,
    ) -> UpstreamPage:
        """Search videos by keyword.

        Args:
            keyword: Free-text query.
            page: 1-based page number.
            per_page: Page size, clamped to the provider maximum.
            order: Sort order.

        Raises:
            ProviderError: On timeout, transport failure, non-2xx status,
                embedded error or malformed body.
        """
        per_page = max(1, min(per_page, self._max_per_page))
        params = {
            "query": keyword.strip(),
            "per_page": str(per_page),
            "page": str(max(1, page)),
            "thumbsize": "big",
            "order": Order(order).value,
            "gay": "0",
            "lq": "1",
            "format": "json",
        }
        data = await self._get_json("search/", params)
        if not isinstance(data, dict):
            raise ProviderPayloadError("Provider returned an unexpected search payload")
        try:
            return UpstreamPage.model_validate(data)
        except ValidationError as e:
            raise ProviderPayloadError(f"Malformed search payload: {e}") from e

    async def fetch_by_id(self, video_id: str) -> UpstreamVideo:
        """Fetch one video by its provider id.

        Raises:
            ParamValidationError: If the id is empty or not alphanumeric.
            ProviderError: On any upstream failure, including unknown ids.
        """
        if not self.is_valid_video_id(video_id):
            raise ParamValidationError(f"Invalid video id: {video_id!r}")

        video_id = video_id.strip()
        data = await self._get_json("id/", {"id": video_id, "thumbsize": "big", "format": "json"})
        if not isinstance(data, dict) or not data.get("id"):
            raise ProviderResponseError(f"Video not found: {video_id}", status_code=404)
        try:
            return UpstreamVideo.model_validate(data)
        except ValidationError as e:
            raise ProviderPayloadError(f"Malformed video payload: {e}") from e

    async def removed(self, page: int = 1, per_page: int = 60) -> list[RemovedVideo]:
        """List videos the provider has deleted."""
        per_page = max(1, min(per_page, self._max_per_page))
        data = await self._get_json(
            "removed/", {"page": str(max(1, page)), "per_page": str(per_page), "format": "json"}
        )
        entries = data.get("videos", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise ProviderPayloadError("Provider returned an unexpected removed-videos payload")
        try:
            return [RemovedVideo.model_validate(entry) for entry in entries]
        except ValidationError as e:
            raise ProviderPayloadError(f"Malformed removed-videos payload: {e}") from e

    @staticmethod
    def is_valid_video_id(video_id: str) -> bool:
        """Provider ids are non-empty ASCII alphanumerics."""
        return bool(video_id) and bool(_VIDEO_ID.fullmatch(video_id.strip()))

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        """GET ``path`` under the base URL and decode the JSON body."""
        url = f"{self._base_url}/{path}"
        logger.debug("Provider GET %s %s", url, params)
        try:
            response = await asyncio.wait_for(
                self._client.get(url, params=params, headers=self._headers, timeout=self._timeout),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ProviderTimeoutError(
                f"Provider request timed out after {self._timeout:g}s"
            ) from e
        except httpx.TransportError as e:
            raise ProviderConnectionError(f"Provider unreachable: {e}") from e

        if not response.is_success:
            raise ProviderHTTPError(response.status_code, response.reason_phrase)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseError(f"Provider returned invalid JSON: {e}") from e

        if isinstance(data, dict) and data.get("error"):
            raise ProviderResponseError(f"Provider error: {data['error']}")
        return data
