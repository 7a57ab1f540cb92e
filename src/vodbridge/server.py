"""FastMCP server: thin wrapper exposing RequestDispatcher as MCP tools."""

from fastmcp import FastMCP

from vodbridge.api import build_dispatcher
from vodbridge.config import settings
from vodbridge.dispatcher import RequestDispatcher

mcp = FastMCP(
    name="vodbridge",
    instructions=(
        "vodbridge answers legacy VOD CMS queries from an upstream video API. "
        "Use query_videos for list and search requests, video_detail to look "
        "up ids, and list_categories for the category table."
    ),
)

_dispatcher: RequestDispatcher | None = None


def _get_dispatcher() -> RequestDispatcher:
    """Lazy-initialise the dispatcher singleton with default dependencies."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_dispatcher(settings)
    return _dispatcher


@mcp.tool(annotations={"readOnlyHint": True})
async def query_videos(
    wd: str | None = None,
    t: str | None = None,
    pg: int = 1,
    limit: int = 20,
    order: str | None = None,
    ac: str | None = None,
) -> dict:
    """Run a legacy list or search query and return the protocol envelope.

    Args:
        wd: Search keyword; when present the query becomes a search.
        t: Category id.
        pg: 1-based page number.
        limit: Page size, 1-100.
        order: Sort order (time, duration, score, hits, ...).
        ac: Explicit action hint (list, search, detail, category).
    """
    raw = {"pg": str(pg), "limit": str(limit)}
    for key, value in (("wd", wd), ("t", t), ("order", order), ("ac", ac)):
        if value:
            raw[key] = value
    result = await _get_dispatcher().dispatch(raw)
    return result.payload


@mcp.tool(annotations={"readOnlyHint": True})
async def video_detail(ids: list[str]) -> dict:
    """Look up up to 10 videos by provider id.

    Args:
        ids: Provider video ids (alphanumeric).
    """
    result = await _get_dispatcher().dispatch({"ac": "detail", "ids": ",".join(ids)})
    return result.payload


@mcp.tool(annotations={"readOnlyHint": True})
async def list_categories() -> dict:
    """Return the static category table."""
    result = await _get_dispatcher().dispatch({"ac": "category"})
    return result.payload


@mcp.tool(annotations={"readOnlyHint": True})
def performance_stats() -> dict:
    """Latency statistics (ms) for every operation recorded so far."""
    snapshot = _get_dispatcher().monitor.snapshot()
    return {
        operation: {"avg": item.avg, "min": item.min, "max": item.max, "count": item.count}
        for operation, item in snapshot.items()
    }
