"""Trellis workflow API HTTP client."""

from trellis_mcp.client.config import Settings
from trellis_mcp.client.trellis_client import TrellisClient

__all__ = ["Settings", "TrellisClient"]
