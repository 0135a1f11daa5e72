"""Shared fixtures: deterministic IDs, settings and a mocked TrellisClient.

The mocked client serves a small project:

  Referral (ent-referral)   fields: Status, Summary, Last Name
  Document (ent-document)   fields: Extracted Text, Document Type
  Transforms: "OCR Document", "OCR Document v2"

and a workflow with a Referral row-created trigger feeding one action block.
"""

from __future__ import annotations

import copy
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from trellis_mcp.client.config import Settings

ENTITIES: list[dict[str, Any]] = [
    {"id": "ent-referral", "name": "Referral", "entity_type": "table"},
    {"id": "ent-document", "name": "Document", "entity_type": "table"},
]

FIELDS: dict[str, list[dict[str, Any]]] = {
    "ent-referral": [
        {"id": "fld-status", "name": "Status"},
        {"id": "fld-summary", "name": "Summary"},
        {"id": "fld-last-name", "name": "Last Name"},
    ],
    "ent-document": [
        {"id": "fld-doc-text", "name": "Extracted Text"},
        {"id": "fld-doc-type", "name": "Document Type"},
    ],
}

TRANSFORMS: list[dict[str, Any]] = [
    {"id": "tr-ocr", "name": "OCR Document"},
    {"id": "tr-ocr-v2", "name": "OCR Document v2"},
]

TRIGGER_NODE: dict[str, Any] = {
    "id": "wblock_trigger",
    "type": "trigger",
    "name": "Row Created",
    "entity_id": "ent-referral",
    "position": {"x": 300, "y": 50},
    "trigger": {"id": "wtrig_1", "event_name": "row_created", "entity_id": "ent-referral"},
}

ACTION_NODE: dict[str, Any] = {
    "id": "wblock_existing",
    "type": "action",
    "name": "Run Transform",
    # Legacy flat coordinates
    "position_x": 300,
    "position_y": 250,
    "action": {"name": "run_transform", "transform_id": "tr-ocr"},
}

GRAPH: dict[str, Any] = {
    "data": {
        "nodes": [TRIGGER_NODE, ACTION_NODE],
        "edges": [
            {"id": "edge-1", "source": "wblock_trigger", "target": "wblock_existing", "animated": True},
        ],
    },
}


class SequentialIdGenerator:
    """``<prefix>_1``, ``<prefix>_2`` ... with one counter across prefixes."""

    def __init__(self) -> None:
        self.count = 0

    def new_id(self, prefix: str) -> str:
        self.count += 1
        return f"{prefix}_{self.count}"


@pytest.fixture
def ids() -> SequentialIdGenerator:
    return SequentialIdGenerator()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_key="test-key",
        api_base="https://api.trellis.test",
        project_id="proj-1",
        workflow_id="wf-1",
    )


@pytest.fixture
def make_client():
    """Factory for a MagicMock TrellisClient with every method as an AsyncMock.

    Each endpoint answers in a different envelope so the parsers are always
    exercised end to end.
    """

    def _make(
        entities: list[dict[str, Any]] | None = None,
        fields: dict[str, list[dict[str, Any]]] | None = None,
        transforms: list[dict[str, Any]] | None = None,
        graph: dict[str, Any] | None = None,
        patch_response: Any = None,
    ) -> MagicMock:
        entities = copy.deepcopy(ENTITIES if entities is None else entities)
        fields = copy.deepcopy(FIELDS if fields is None else fields)
        transforms = copy.deepcopy(TRANSFORMS if transforms is None else transforms)
        graph = copy.deepcopy(GRAPH if graph is None else graph)

        client = MagicMock()
        client.list_entities = AsyncMock(return_value={"entities": entities})
        client.list_entity_fields = AsyncMock(
            side_effect=lambda entity_id, entity_field_id=None: {"data": {"fields": fields.get(entity_id, [])}}
        )
        client.list_transforms = AsyncMock(return_value=transforms)
        client.get_workflow_config = AsyncMock(return_value=graph)
        client.patch_workflow_blocks = AsyncMock(
            return_value={"success": True} if patch_response is None else patch_response
        )
        client.create_entity = AsyncMock(return_value={"id": "ent-new", "name": "New"})
        return client

    return _make

