"""Entry point: ``python -m trellis_mcp.mcp`` (or the ``trellis-mcp`` script).

Serves the Trellis MCP tools over Streamable HTTP at ``http://HOST:PORT/mcp``
(default) or over stdio for desktop MCP clients.

Environment variables
---------------------
TRELLIS_API_KEY      Workflow API key (required).
TRELLIS_API_BASE     Workflow API base URL (required).
PROJECT_ID           Default project for entity tools.
WORKFLOW_ID          Default workflow for graph tools.
REQUEST_TIMEOUT      Request timeout in seconds (default ``30``).
HOST                 HTTP bind address (default ``0.0.0.0``).
PORT                 HTTP port (default ``3000``).
TRELLIS_LOG_LEVEL    Python log level (default ``WARNING``).
MCP_TRANSPORT        ``http`` (default) or ``stdio``.
"""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.environ.get("TRELLIS_LOG_LEVEL", "WARNING").upper(),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

from trellis_mcp.client import Settings, TrellisClient  # noqa: E402
from trellis_mcp.mcp.server import create_app, create_server  # noqa: E402
from trellis_mcp.mcp.tools import TrellisMCPTools  # noqa: E402

logger = logging.getLogger("trellis_mcp.mcp")


async def main() -> None:
    settings = Settings.from_env()
    client = TrellisClient(settings)
    try:
        tools = TrellisMCPTools(client, settings)
        server = create_server(tools)

        transport = os.environ.get("MCP_TRANSPORT", "http").lower()
        if transport == "stdio":
            from mcp.server.stdio import stdio_server  # noqa: E402

            async with stdio_server() as (read_stream, write_stream):
                init_options = server.create_initialization_options()
                await server.run(read_stream, write_stream, init_options)
        elif transport == "http":
            import uvicorn

            config = uvicorn.Config(
                create_app(server),
                host=settings.host,
                port=settings.port,
                log_level=settings.log_level.lower(),
            )
            logger.info("Serving MCP on http://%s:%d/mcp", settings.host, settings.port)
            await uvicorn.Server(config).serve()
        else:
            raise ValueError(f"Unsupported MCP_TRANSPORT {transport!r}: use 'http' or 'stdio'")
    finally:
        await client.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
