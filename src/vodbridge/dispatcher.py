"""Request dispatch: parse, validate, call the provider, transform, stamp cache policy."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Mapping

from vodbridge import cache as cache_categories
from vodbridge.cache import CacheManager
from vodbridge.config import settings
from vodbridge.errors import ErrorHandler
from vodbridge.models import (
    Action,
    ErrorDetail,
    LegacyRecord,
    LegacyResponse,
    RequestIntent,
)
from vodbridge.monitor import PerformanceMonitor
from vodbridge.params import KEYWORD_REQUIRED, VIDEO_IDS_REQUIRED, ParamsProcessor
from vodbridge.provider import ProviderClient
from vodbridge.retry import DETAIL_RETRY, SEARCH_RETRY, RetryHandler
from vodbridge.transformer import Transformer

logger = logging.getLogger(__name__)

REQUEST_OPERATION = "vod_request"
NO_VALID_DATA = "No valid video data found"


@dataclass(frozen=True)
class DispatchResult:
    """Final response body plus the cache policy to advertise for it."""

    body: LegacyResponse
    cache_category: str
    cache_key: str | None = None

    @property
    def payload(self) -> dict:
        return self.body.to_wire()


@dataclass(frozen=True)
class DetailOutcome:
    """Result of one id lookup within a detail request."""

    video_id: str
    record: LegacyRecord | None = None
    error: ErrorDetail | None = None


class RequestDispatcher:
    """Single orchestration point for legacy protocol requests.

    The HTTP API, MCP server and CLI are thin wrappers over this class.
    Dependencies are injected via the constructor so tests can swap in
    fakes; omitted ones get default instances.
    """

    def __init__(
        self,
        provider: ProviderClient,
        params: ParamsProcessor | None = None,
        transformer: Transformer | None = None,
        cache: CacheManager | None = None,
        monitor: PerformanceMonitor | None = None,
        errors: ErrorHandler | None = None,
        search_retry: RetryHandler = SEARCH_RETRY,
        detail_retry: RetryHandler = DETAIL_RETRY,
        list_query: str | None = None,
        category_queries: Mapping[int, str] | None = None,
    ) -> None:
        self._provider = provider
        self._params = params or ParamsProcessor()
        self._transformer = transformer or Transformer()
        self._cache = cache or CacheManager(settings.get_cache_time())
        self._monitor = monitor or PerformanceMonitor(slow_ms=settings.slow_operation_ms)
        self._errors = errors or ErrorHandler()
        self._search_retry = search_retry
        self._detail_retry = detail_retry
        self._list_query = list_query or settings.list_query
        self._category_queries = dict(
            settings.category_queries if category_queries is None else category_queries
        )
        self._handlers = {
            Action.SEARCH: self._handle_search,
            Action.LIST: self._handle_list,
            Action.DETAIL: self._handle_detail,
            Action.CATEGORY: self._handle_category,
        }

    @property
    def cache(self) -> CacheManager:
        return self._cache

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    async def aclose(self) -> None:
        await self._provider.aclose()

    async def dispatch(self, raw: Mapping[str, str]) -> DispatchResult:
        """Serve one legacy query. Never raises; failures become error envelopes."""
        start = time.perf_counter()
        try:
            intent = self._params.process(raw)
            validation = self._params.validate(intent)
            if not validation.valid:
                result = self._fail(self._errors.validation(validation.error), "Parameter Validation")
            else:
                result = await self.handle(intent)
                self._monitor.record(f"{REQUEST_OPERATION}_{intent.action.value}", start)
        except Exception as e:
            result = self._fail(self._errors.classify(e), "Request")
            self._monitor.record(f"{REQUEST_OPERATION}_error", start)

        self._monitor.record(REQUEST_OPERATION, start)
        return result

    async def handle(self, intent: RequestIntent) -> DispatchResult:
        """Run the handler for an already validated intent."""
        return await self._handlers[intent.action](intent)

    async def _handle_search(self, intent: RequestIntent) -> DispatchResult:
        start = time.perf_counter()
        if not intent.keyword:
            return self._fail(self._errors.validation(KEYWORD_REQUIRED), "Video Search")

        try:
            upstream = await self._search_retry.call(
                lambda: self._provider.search(
                    intent.keyword,
                    intent.page,
                    min(intent.limit, self._provider.max_per_page),
                    intent.filters.order,
                ),
                name="video_search",
            )
        except Exception as e:
            return self._fail(self._errors.classify(e), "Video Search", intent)

        body = self._transformer.to_legacy_page(upstream, intent.page, intent.limit)
        self._monitor.record("video_search", start)
        return self._success(body, cache_categories.SEARCH, intent)

    async def _handle_list(self, intent: RequestIntent) -> DispatchResult:
        start = time.perf_counter()
        keyword = self._category_queries.get(intent.category_id, self._list_query)

        try:
            upstream = await self._search_retry.call(
                lambda: self._provider.search(
                    keyword,
                    intent.page,
                    min(intent.limit, self._provider.max_per_page),
                    intent.filters.order,
                ),
                name="video_list",
            )
        except Exception as e:
            return self._fail(self._errors.classify(e), "Video List", intent)

        body = self._transformer.to_legacy_page(upstream, intent.page, intent.limit)
        self._monitor.record("video_list", start)
        return self._success(body, cache_categories.DEFAULT, intent)

    async def _handle_detail(self, intent: RequestIntent) -> DispatchResult:
        start = time.perf_counter()
        if not intent.video_ids:
            return self._fail(self._errors.validation(VIDEO_IDS_REQUIRED), "Video Detail")

        outcomes = await asyncio.gather(
            *(self._fetch_detail(video_id) for video_id in intent.video_ids)
        )
        records = [outcome.record for outcome in outcomes if outcome.record is not None]
        if not records:
            failed = [outcome.video_id for outcome in outcomes]
            detail = self._errors.validation(NO_VALID_DATA, {"failed": failed})
            return self._fail(detail, "Video Detail", intent)

        skipped = len(outcomes) - len(records)
        if skipped:
            logger.info("Detail request served %d of %d ids", len(records), len(outcomes))

        body = self._transformer.to_detail_page(records)
        self._monitor.record("video_detail", start)
        return self._success(body, cache_categories.DETAIL, intent)

    async def _fetch_detail(self, video_id: str) -> DetailOutcome:
        """Look up one id; failures are logged and reported, never raised."""
        try:
            video = await self._detail_retry.call(
                lambda: self._provider.fetch_by_id(video_id),
                name=f"video_detail[{video_id}]",
            )
        except Exception as e:
            detail = self._errors.classify(e)
            self._errors.log(detail, f"Video Detail {video_id}")
            return DetailOutcome(video_id=video_id, error=detail)

        record = self._transformer.to_legacy_record(
            video, self._transformer.detail_vod_id(video_id)
        )
        return DetailOutcome(video_id=video_id, record=record)

    async def _handle_category(self, intent: RequestIntent) -> DispatchResult:
        start = time.perf_counter()
        body = self._transformer.category_page()
        self._monitor.record("category_list", start)
        return self._success(body, cache_categories.CATEGORY, intent)

    def _success(self, body: LegacyResponse, category: str, intent: RequestIntent) -> DispatchResult:
        key = self._cache.cache_key(intent.action.value, intent.cache_params())
        return DispatchResult(body=body, cache_category=category, cache_key=key)

    def _fail(
        self, detail: ErrorDetail, context: str, intent: RequestIntent | None = None
    ) -> DispatchResult:
        self._errors.log(detail, context)
        key = None
        if intent is not None:
            key = self._cache.cache_key(intent.action.value, intent.cache_params())
        return DispatchResult(
            body=self._errors.render(detail),
            cache_category=cache_categories.ERROR,
            cache_key=key,
        )
