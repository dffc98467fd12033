"""MCP server exposing Linear operations as tools over stdio.

Each tool call opens its own Linear client, runs the synchronous operation
in a worker thread and returns one JSON text block. Nothing but the
protocol is written to stdout; logs go to stderr.
"""

import asyncio
import json
import time
from collections.abc import Callable
from typing import Any

import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from linear_mcp.backends import LinearClient
from linear_mcp.config import Settings
from linear_mcp.errors import TrackerError
from linear_mcp.resolver import EntityResolver
from linear_mcp.tools import Handler, register
from linear_mcp.tracker import TrackerClient

logger = structlog.get_logger()

SERVER_NAME = "linear-mcp-server"

server = Server(SERVER_NAME)
_tools, _handlers = register()
_settings: Settings | None = None
_client_factory: Callable[[], TrackerClient] | None = None


def configure(settings: Settings, client_factory: Callable[[], TrackerClient] | None = None) -> None:
    """Install settings and the per-call client factory."""
    global _settings, _client_factory

    _settings = settings
    _client_factory = client_factory or (
        lambda: LinearClient(settings.api_key, endpoint=settings.endpoint, timeout=settings.timeout)
    )


def _get_settings() -> Settings:
    if _settings is None or _client_factory is None:
        raise RuntimeError("Server not configured")
    return _settings


def _text(content: object) -> list[TextContent]:
    if isinstance(content, str):
        return [TextContent(type="text", text=content)]
    return [TextContent(type="text", text=json.dumps(content, indent=2, default=str))]


def run_tool(handler: Handler, arguments: dict[str, Any]) -> Any:
    """Run one operation with a fresh client that is closed afterwards."""
    settings = _get_settings()
    with _client_factory() as client:
        return handler(EntityResolver.from_settings(client, settings), arguments)


@server.list_tools()
async def list_tools() -> list[Tool]:
    return _tools


# Arguments are validated by the operations, which report invalid_input payloads.
@server.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
    handler = _handlers.get(name)
    if handler is None:
        return _text({"error": f"Unknown tool: {name}", "code": "unknown_tool"})

    t0 = time.monotonic()
    try:
        result = await asyncio.to_thread(run_tool, handler, arguments or {})
    except TrackerError as e:
        logger.warning("Tool call failed", tool=name, code=e.code, error=str(e))
        return _text(e.to_dict())
    except Exception:
        logger.exception("Tool call raised", tool=name)
        raise

    duration_ms = round((time.monotonic() - t0) * 1000, 1)
    logger.info("Tool call", tool=name, duration_ms=duration_ms)
    return _text(result)


async def _run(settings: Settings) -> None:
    configure(settings)
    logger.info("Linear MCP server running on stdio", tools=len(_tools))
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def serve(settings: Settings) -> None:
    """Run the MCP server on stdio until the client disconnects."""
    asyncio.run(_run(settings))
