"""Typed workflow blocks, edges and graphs.

New blocks are built from a closed set of action variants, one dataclass per
``action.name`` the composer emits.  Each variant renders its own wire shape
via ``to_dict()``; callers never assemble action payloads by hand.

Existing blocks read back from the workflow API stay plain dicts inside
``WorkflowGraph``: they are only inspected (id, type, entity, position) and
are never resubmitted.

Wire shape of an action block::

    {
      "id": "wblock_1718000000000_k3j9x0a",
      "workflow_id": "wflow_...",
      "type": "action",
      "name": "Run Transform",
      "position": {"x": 300, "y": 200},
      "event_filter_metadata": {},
      "action": {"name": "run_transform", ...variant config...}
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from trellis_mcp.workflow.constants import WorkflowActionType

EVENT_ROW_ID = "{{event.row_id}}"
LOOP_ITEM = "{{loop.item}}"


def template(block_id: str, path: str | None = None) -> str:
    """Template expression resolved by the workflow engine at run time.

    >>> template("wblock_1", "asset_ids")
    '{{wblock_1.asset_ids}}'
    """
    return f"{{{{{block_id}.{path}}}}}" if path else f"{{{{{block_id}}}}}"


def _record_reference_config(config_id: str, record_reference: str) -> dict[str, Any]:
    return {"id": config_id, "record_reference": record_reference, "filters": {}}


# ---------------------------------------------------------------------------
# Action variants
# ---------------------------------------------------------------------------


@dataclass
class EvalCodeAction:
    config_id: str
    code: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": WorkflowActionType.EVAL_CODE.value,
            "code_eval_config": {"id": self.config_id, "code": self.code},
        }


@dataclass
class UpdateRecordAction:
    """Write ``mapping`` ({field_id: expression}) into the referenced row."""

    entity_id: str
    record_config_id: str
    mapping_config_id: str
    mapping: dict[str, str]
    record_reference: str = EVENT_ROW_ID

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": WorkflowActionType.UPDATE_RECORD.value,
            "entity_id": self.entity_id,
            "record_reference_config": _record_reference_config(self.record_config_id, self.record_reference),
            "mapping_config": {"id": self.mapping_config_id, "mapping": dict(self.mapping)},
            "reference_type": "record_reference",
        }


@dataclass
class CreateRecordAction:
    entity_id: str
    mapping_config_id: str
    mapping: dict[str, str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": WorkflowActionType.CREATE_RECORD.value,
            "entity_id": self.entity_id,
            "mapping_config": {
                "id": self.mapping_config_id,
                "mapping": dict(self.mapping),
                "mapping_reference": None,
            },
        }


@dataclass
class RunTransformAction:
    """Run a transform over either a fixed asset list or a referenced one.

    The two sources are mutually exclusive; ``asset_source`` follows from
    whichever is set.
    """

    transform_id: str
    assets_config_id: str
    assets_list: list[str] | None = None
    assets_list_reference: str | None = None

    def __post_init__(self) -> None:
        if self.assets_list is not None and self.assets_list_reference is not None:
            raise ValueError("assets_list and assets_list_reference are mutually exclusive")

    @property
    def asset_source(self) -> str:
        return "reference" if self.assets_list_reference else "list"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": WorkflowActionType.RUN_TRANSFORM.value,
            "transform_id": self.transform_id,
            "assets_config": {
                "id": self.assets_config_id,
                "assets_list": list(self.assets_list) if self.assets_list is not None else None,
                "assets_list_reference": self.assets_list_reference,
            },
            "asset_source": self.asset_source,
        }


@dataclass
class StartLoopAction:
    config_id: str
    loop_variable: str
    list_reference: str
    loop_type: str = "concurrent"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": WorkflowActionType.START_LOOP.value,
            "loop_config": {
                "id": self.config_id,
                "loop_type": self.loop_type,
                "loop_variable": self.loop_variable,
                "table_reference": None,
                "list_reference": self.list_reference,
            },
        }


@dataclass
class EndLoopAction:
    def to_dict(self) -> dict[str, Any]:
        return {"name": WorkflowActionType.END_LOOP.value}


@dataclass
class GetRecordAssetsAction:
    entity_id: str
    record_config_id: str
    record_reference: str = EVENT_ROW_ID

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": WorkflowActionType.GET_RECORD_ASSETS.value,
            "entity_id": self.entity_id,
            "record_reference_config": _record_reference_config(self.record_config_id, self.record_reference),
            "reference_type": "record_reference",
        }


@dataclass
class UpdateAssetAction:
    config_id: str
    new_name: str
    asset_id: str = LOOP_ITEM

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": WorkflowActionType.UPDATE_ASSET.value,
            "update_asset_config": {
                "id": self.config_id,
                "asset_id": self.asset_id,
                "new_name": self.new_name,
            },
        }


BlockAction = Union[
    EvalCodeAction,
    UpdateRecordAction,
    CreateRecordAction,
    RunTransformAction,
    StartLoopAction,
    EndLoopAction,
    GetRecordAssetsAction,
    UpdateAssetAction,
]


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


@dataclass
class ActionBlock:
    id: str
    workflow_id: str
    name: str
    position: dict[str, float]
    action: BlockAction

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "type": "action",
            "name": self.name,
            "position": dict(self.position),
            "event_filter_metadata": {},
            "action": self.action.to_dict(),
        }


@dataclass
class TriggerBlock:
    """Entry-point block fired by a row event on ``entity_id``."""

    id: str
    workflow_id: str
    entity_id: str
    trigger_id: str
    position: dict[str, float]
    name: str = "Row Created"
    event_name: str = "row_created"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "trigger",
            "workflow_id": self.workflow_id,
            "name": self.name,
            "entity_id": self.entity_id,
            "transform_id": None,
            "row_id": None,
            "description": None,
            "position": dict(self.position),
            "trigger": {
                "id": self.trigger_id,
                "event_name": self.event_name,
                "entity_id": self.entity_id,
            },
        }


WorkflowBlock = Union[ActionBlock, TriggerBlock]


# ---------------------------------------------------------------------------
# Edges and graphs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowEdge:
    source: str
    target: str

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source, "target": self.target}


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def block_position(block: dict[str, Any]) -> tuple[float, float]:
    """Canvas position of an existing block, ``(0, 0)`` when unknown.

    Reads ``position.{x,y}`` and falls back to the flat ``position_x`` /
    ``position_y`` keys some responses carry instead.
    """
    position = block.get("position")
    position = position if isinstance(position, dict) else {}
    x = _number(position.get("x"))
    y = _number(position.get("y"))
    if x is None:
        x = _number(block.get("position_x"))
    if y is None:
        y = _number(block.get("position_y"))
    return (x if x is not None else 0, y if y is not None else 0)


@dataclass
class WorkflowGraph:
    """Full node/edge set of one workflow, as read from the config endpoint."""

    nodes: list[dict[str, Any]] = field(default_factory=list)
    edges: list[WorkflowEdge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"nodes": self.nodes, "edges": [e.to_dict() for e in self.edges]}

    def find_block(self, block_id: str) -> dict[str, Any] | None:
        return next((n for n in self.nodes if n.get("id") == block_id), None)

    def trigger_for_entity(self, entity_id: str) -> dict[str, Any] | None:
        for n in self.nodes:
            if n.get("type") != "trigger":
                continue
            trigger = n.get("trigger") if isinstance(n.get("trigger"), dict) else {}
            if n.get("entity_id") == entity_id or trigger.get("entity_id") == entity_id:
                return n
        return None
