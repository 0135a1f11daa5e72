"""MCP server exposing the Trellis workflow REST API as tools."""

__version__ = "0.1.0"
