"""CLI interface: thin wrapper over RequestDispatcher, the HTTP API and FastMCP server."""

import asyncio
import json
import logging

import typer

from vodbridge.api import build_dispatcher
from vodbridge.config import settings
from vodbridge.dispatcher import RequestDispatcher
from vodbridge.errors import ErrorHandler, ProviderError
from vodbridge.provider import ProviderClient

app = typer.Typer(
    name="vodbridge",
    help="Serve the legacy VOD CMS protocol from an upstream video API.",
    no_args_is_help=True,
)


def _get_dispatcher() -> RequestDispatcher:
    """Create a dispatcher with default dependencies."""
    return build_dispatcher(settings)


def _get_provider() -> ProviderClient:
    return ProviderClient()


def _parse_pairs(pairs: list[str]) -> dict[str, str]:
    """``["wd=space", "pg=2"]`` -> ``{"wd": "space", "pg": "2"}``."""
    raw: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            typer.echo(f"❌ Expected KEY=VALUE, got {pair!r}", err=True)
            raise typer.Exit(code=1)
        raw[key] = value
    return raw


@app.command()
def query(
    params: list[str] = typer.Argument(None, help="Legacy parameters as KEY=VALUE (e.g. wd=space pg=2)."),
    pretty: bool = typer.Option(True, "--pretty/--compact", help="Indent the JSON output."),
) -> None:
    """Run one legacy request and print the response envelope."""
    raw = _parse_pairs(params or [])

    async def _run():
        dispatcher = _get_dispatcher()
        try:
            return await dispatcher.dispatch(raw)
        finally:
            await dispatcher.aclose()

    result = asyncio.run(_run())
    typer.echo(json.dumps(result.payload, ensure_ascii=False, indent=2 if pretty else None))
    if result.body.code != 1:
        raise typer.Exit(code=1)


@app.command()
def removed(
    page: int = typer.Option(1, "--page", "-p", help="Page number."),
    limit: int = typer.Option(60, "--limit", "-n", help="Ids per page."),
) -> None:
    """List video ids the upstream provider reports as removed."""

    async def _run():
        provider = _get_provider()
        try:
            return await provider.removed(page=page, per_page=limit)
        finally:
            await provider.aclose()

    try:
        videos = asyncio.run(_run())
    except ProviderError as e:
        detail = ErrorHandler().classify(e)
        typer.echo(f"❌ {detail.message}: {e}", err=True)
        raise typer.Exit(code=1)

    if not videos:
        typer.echo("No removed videos reported.")
        return
    for video in videos:
        deleted = f"  {video.deleted}" if video.deleted else ""
        typer.echo(f"  {video.id}{deleted}")


@app.command()
def serve(
    mcp: bool = typer.Option(False, "--mcp", help="Run the MCP server instead of the HTTP API."),
    stdio: bool = typer.Option(False, "--stdio", help="Use stdio transport for the MCP server."),
    host: str = typer.Option(settings.host, "--host", help="Host to bind to."),
    port: int = typer.Option(settings.port, "--port", help="Port to bind to."),
) -> None:
    """Start the legacy protocol HTTP API, or the MCP server with --mcp."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if mcp or stdio:
        from vodbridge.server import mcp as mcp_server

        if stdio:
            typer.echo("Starting vodbridge MCP server (stdio)...", err=True)
            mcp_server.run(transport="stdio")
        else:
            typer.echo(f"Starting vodbridge MCP server on http://{host}:{port}/mcp")
            mcp_server.run(transport="streamable-http", host=host, port=port)
        return

    import uvicorn

    typer.echo(f"Starting vodbridge API on http://{host}:{port}/api/vod")
    uvicorn.run("vodbridge.api:app", host=host, port=port, log_level=settings.log_level.lower())
