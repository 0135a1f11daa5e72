"""Envelopes shared by the tool surface, the catalogue and the MCP server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ToolDef:
    """Definition of a tool exposed over MCP.

    parameters follows JSON Schema format:
        {"type": "object", "properties": {...}, "required": [...]}
    """

    name: str
    title: str
    description: str
    parameters: dict[str, Any]


@dataclass
class ToolResult:
    """Normalized envelope for every tool execution result.

    ok:      True if the tool completed without error.
    summary: One-line human-readable outcome.  On failure this is the full
             error message (``Error <activity>: <detail>``) and the only
             text the caller receives.
    data:    Payload returned to the caller (parsed list, normalised graph,
             upstream body or composer result).  None on failure.
    """

    ok: bool
    summary: str
    data: Any
