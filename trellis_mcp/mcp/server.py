"""MCP server — exposes TrellisMCPTools via the MCP protocol.

Uses the low-level ``mcp.server.Server`` with a single ``call_tool`` dispatcher
driven by ``TOOL_CATALOG``.  Zero per-tool wrappers, zero schema duplication.

``create_app`` mounts the same server as a stateless Streamable HTTP endpoint
(``/mcp``) in a FastAPI app; ``__main__`` can run it over stdio instead.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from mcp import types
from mcp.server import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.types import Receive, Scope, Send

from trellis_mcp.errors import ToolCallError
from trellis_mcp.mcp.registry import TOOL_CATALOG
from trellis_mcp.mcp.results import ToolResult
from trellis_mcp.mcp.tools import TrellisMCPTools

logger = logging.getLogger("trellis_mcp.mcp.server")

SERVER_NAME = "trellis"

# Pre-compute name → method_name for O(1) dispatch.
_DISPATCH: dict[str, str] = {td.name: method_name for method_name, td in TOOL_CATALOG}


def create_server(tools: TrellisMCPTools) -> Server:
    """Create an MCP Server wired to the given *tools* instance.

    The server exposes every entry in ``TOOL_CATALOG``; adding a tool there
    automatically makes it available here.

    Success returns the payload twice: as indented JSON text and as
    structured content.  A failed ``ToolResult`` is raised as
    ``ToolCallError`` so the SDK reports it with ``isError=True`` and the
    error message as the only text.
    """
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=td.name,
                title=td.title,
                description=td.description or "",
                inputSchema=td.parameters,
            )
            for _method_name, td in TOOL_CATALOG
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None = None) -> tuple[list[types.TextContent], dict]:
        method_name = _DISPATCH.get(name)
        if method_name is None:
            raise ToolCallError(f"Unknown tool: {name}")

        method = getattr(tools, method_name)
        result: ToolResult = await method(**(arguments or {}))
        if not result.ok:
            raise ToolCallError(result.summary)
        logger.debug("%s: %s", name, result.summary)
        return [types.TextContent(type="text", text=_serialize(result))], _structured(result)

    return server


def _serialize(r: ToolResult) -> str:
    """Render a successful ToolResult's payload as indented JSON."""
    return json.dumps(r.data, indent=2, default=str)


def _structured(r: ToolResult) -> dict[str, Any]:
    """Structured content must be an object: lists and scalars go under ``result``."""
    if isinstance(r.data, dict):
        return json.loads(json.dumps(r.data, default=str))
    return {"result": json.loads(json.dumps(r.data, default=str))}


class _StreamableHTTPEndpoint:
    """ASGI endpoint forwarding every request to the session manager."""

    def __init__(self, manager: StreamableHTTPSessionManager) -> None:
        self._manager = manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._manager.handle_request(scope, receive, send)


def create_app(server: Server) -> FastAPI:
    """FastAPI app serving *server* at ``/mcp`` (Streamable HTTP) plus ``/health``.

    Stateless with JSON responses: every POST is a self-contained exchange, no
    session ID and no SSE stream are kept between requests.
    """
    manager = StreamableHTTPSessionManager(
        app=server,
        event_store=None,
        json_response=True,
        stateless=True,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with manager.run():
            logger.info("MCP endpoint ready: %d tools", len(TOOL_CATALOG))
            yield
        logger.info("MCP endpoint shut down")

    app = FastAPI(
        title="Trellis MCP Server",
        description="Trellis workflow API exposed as MCP tools over Streamable HTTP.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_route("/mcp", _StreamableHTTPEndpoint(manager), methods=["GET", "POST", "DELETE"], include_in_schema=False)

    @app.get("/health", tags=["system"])
    async def health() -> dict:
        return {"status": "ok", "server": SERVER_NAME, "tools": len(TOOL_CATALOG)}

    return app
