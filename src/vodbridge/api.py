"""FastAPI application serving the legacy VOD protocol."""

import json
import logging
import re
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from vodbridge.cache import CacheManager
from vodbridge.config import Settings, settings as default_settings
from vodbridge.dispatcher import DispatchResult, RequestDispatcher
from vodbridge.monitor import PerformanceMonitor
from vodbridge.provider import ProviderClient

logger = logging.getLogger(__name__)

# Only plain JS identifiers and dotted paths are echoed back as JSONP callbacks
_CALLBACK = re.compile(r"[A-Za-z_$][\w$.]*")


def build_dispatcher(config: Settings) -> RequestDispatcher:
    """Wire a dispatcher with default collaborators from ``config``."""
    provider = ProviderClient(
        base_url=config.provider_base_url,
        timeout=config.provider_timeout,
        max_per_page=config.provider_max_per_page,
        user_agent=config.provider_user_agent,
    )
    return RequestDispatcher(
        provider=provider,
        cache=CacheManager(config.get_cache_time()),
        monitor=PerformanceMonitor(slow_ms=config.slow_operation_ms),
        list_query=config.list_query,
        category_queries=config.category_queries,
    )


def render(result: DispatchResult, cache: CacheManager, callback: str | None = None) -> Response:
    """HTTP response for a dispatch result: always 200, JSON or JSONP."""
    if callback and _CALLBACK.fullmatch(callback):
        body = json.dumps(result.payload, ensure_ascii=False)
        response = Response(
            content=f"{callback}({body});",
            media_type="application/javascript",
        )
    else:
        response = JSONResponse(content=result.payload)
    cache.attach_cache_headers(response, result.cache_category, result.cache_key)
    return response


def create_app(
    config: Settings | None = None,
    dispatcher: RequestDispatcher | None = None,
) -> FastAPI:
    """Build the application; dependencies live on ``app.state``."""
    config = config or default_settings
    dispatcher = dispatcher or build_dispatcher(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.dispatcher.aclose()

    app = FastAPI(
        title="vodbridge",
        description="Legacy VOD CMS protocol adapter over an upstream video API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/api/vod")
    async def vod(request: Request) -> Response:
        """Legacy protocol endpoint; the query string is passed through untouched."""
        raw = dict(request.query_params)
        result = await request.app.state.dispatcher.dispatch(raw)
        return render(result, request.app.state.dispatcher.cache, raw.get("callback"))

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/stats")
    async def stats(request: Request) -> dict:
        """Latency stats in milliseconds for every recorded operation."""
        snapshot = request.app.state.dispatcher.monitor.snapshot()
        return {
            operation: {
                "avg": round(item.avg, 2),
                "min": round(item.min, 2),
                "max": round(item.max, 2),
                "count": item.count,
            }
            for operation, item in snapshot.items()
        }

    return app


app = create_app()
