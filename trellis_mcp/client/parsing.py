"""Shape-tolerant parsing of workflow API payloads.

The upstream wraps payloads inconsistently: the same endpoint has been seen
returning a bare array, ``{"entities": [...]}`` and
``{"data": {"entities": [...]}}``.  Every consumer goes through this module so
there is exactly one precedence order and one failure path:

  1. bare JSON array                      → the array
  2. object with the collection key       → object[key] (must be an array)
  3. object with ``data``                 → rules 1-2 applied to ``data``
  4. anything else                        → UnexpectedShapeError

Workflow graphs follow the same idea: ``data.nodes``/``data.edges`` win over
top-level ``nodes``/``edges``.
"""

from __future__ import annotations

from typing import Any

from trellis_mcp.errors import UnexpectedShapeError
from trellis_mcp.workflow.blocks import WorkflowEdge, WorkflowGraph


def _collection(payload: Any, key: str) -> list[Any] | None:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    return None


def parse_collection(payload: Any, key: str) -> list[dict[str, Any]]:
    """Extract the ``key`` collection from any tolerated envelope."""
    items = _collection(payload, key)
    if items is None and isinstance(payload, dict) and "data" in payload:
        items = _collection(payload["data"], key)
    if items is None:
        raise UnexpectedShapeError(key, payload)
    return [item for item in items if isinstance(item, dict)]


def parse_entities(payload: Any) -> list[dict[str, Any]]:
    return parse_collection(payload, "entities")


def parse_fields(payload: Any) -> list[dict[str, Any]]:
    return parse_collection(payload, "fields")


def parse_transforms(payload: Any) -> list[dict[str, Any]]:
    return parse_collection(payload, "transforms")


def normalize_edges(edges: Any) -> list[WorkflowEdge]:
    """Coerce raw edges to ``{source, target}``; extra keys are dropped.

    Entries without a string source and target cannot be resubmitted and are
    skipped.
    """
    if not isinstance(edges, list):
        return []
    normalized: list[WorkflowEdge] = []
    for e in edges:
        if not isinstance(e, dict):
            continue
        source, target = e.get("source"), e.get("target")
        if isinstance(source, str) and isinstance(target, str):
            normalized.append(WorkflowEdge(source=source, target=target))
    return normalized


def parse_workflow_graph(payload: Any) -> WorkflowGraph:
    """Parse a ``GET /workflows/{id}/config`` response into a WorkflowGraph."""
    container: dict[str, Any] | None = None
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, dict) and ("nodes" in data or "edges" in data):
            container = data
        elif "nodes" in payload or "edges" in payload:
            container = payload
    if container is None:
        raise UnexpectedShapeError("workflow config", payload)

    nodes = container.get("nodes") or []
    if not isinstance(nodes, list):
        raise UnexpectedShapeError("workflow config", payload)
    return WorkflowGraph(
        nodes=[n for n in nodes if isinstance(n, dict)],
        edges=normalize_edges(container.get("edges") or []),
    )


def parse_id_mapping(payload: Any) -> dict[str, str]:
    """Extract the temp-id → server-id mapping from a PATCH response."""
    if not isinstance(payload, dict):
        return {}
    data = payload.get("data")
    for source in (data if isinstance(data, dict) else {}, payload):
        mapping = source.get("id_mapping")
        if isinstance(mapping, dict) and mapping:
            return {str(k): str(v) for k, v in mapping.items() if v}
    return {}
