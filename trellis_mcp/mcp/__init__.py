"""MCP tool surface and server for the Trellis workflow API."""

from trellis_mcp.mcp.server import create_app, create_server
from trellis_mcp.mcp.tools import TrellisMCPTools

__all__ = ["TrellisMCPTools", "create_app", "create_server"]
