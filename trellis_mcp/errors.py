"""Error taxonomy for the Trellis MCP server.

Every failure raised below the tool boundary is a ``TrellisError``.  The tool
surface (``trellis_mcp.mcp.tools``) converts them into ``ToolResult`` error
envelopes; nothing here is allowed to escape as a process-level failure.

  ConfigurationError   — missing credential, base URL, project or workflow ID
  ValidationError      — bad tool arguments, detected before any network call
  NotFoundError        — zero name matches (BlockNotFoundError: anchor absent)
  AmbiguousError       — more than one case-insensitive name match
  UnexpectedShapeError — upstream payload matches none of the tolerated shapes
  UpstreamError        — non-2xx response, timeout or connection failure
  ToolCallError        — a failed ToolResult surfaced as an MCP error result
"""

from __future__ import annotations

import json
from typing import Any


class TrellisError(Exception):
    """Base class for every error this package raises on purpose."""

    @property
    def detail(self) -> str:
        return str(self)


class ConfigurationError(TrellisError):
    pass


class ValidationError(TrellisError):
    pass


class NotFoundError(TrellisError):
    pass


class BlockNotFoundError(NotFoundError):
    def __init__(self, block_id: str) -> None:
        super().__init__(f'Block with ID "{block_id}" not found in workflow')
        self.block_id = block_id


class AmbiguousError(TrellisError):
    pass


class UnexpectedShapeError(TrellisError):
    """Raised when a payload is neither a bare collection nor a known wrapper.

    The message carries a truncated excerpt of the raw payload so the caller
    can see what the upstream actually returned.
    """

    EXCERPT_CHARS = 500

    def __init__(self, what: str, payload: Any) -> None:
        try:
            raw = json.dumps(payload, default=str)
        except (TypeError, ValueError):
            raw = repr(payload)
        super().__init__(f"Unexpected {what} response shape: {raw[: self.EXCERPT_CHARS]}")
        self.payload = payload


class UpstreamError(TrellisError):
    """Non-2xx response or transport failure talking to the workflow API.

    status_code: HTTP status, or None when no response was received.
    body:        Decoded JSON error body when the upstream sent one, else the
                 raw response text (may be empty).
    """

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def detail(self) -> str:
        # Prefer the upstream's structured error body over our own message.
        if isinstance(self.body, (dict, list)):
            return json.dumps(self.body, indent=2, default=str)
        if isinstance(self.body, str) and self.body.strip():
            return self.body
        return str(self)


class ToolCallError(TrellisError):
    """A tool returned a failed ``ToolResult``; carries its message to the transport."""
