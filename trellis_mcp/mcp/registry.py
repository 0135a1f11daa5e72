"""Registry for the 15 Trellis MCP tools.

``TOOL_CATALOG`` is the single source of truth for tool metadata (name,
title, description, JSON schema).  The MCP server lists and dispatches from
it directly.

Adding a tool: append to ``TOOL_CATALOG`` and add the method to
``TrellisMCPTools``.  Two files, nothing else.
"""

from __future__ import annotations

from typing import Any

from trellis_mcp.mcp.results import ToolDef
from trellis_mcp.workflow.composer import LOOP_TYPES


def _td(
    name: str,
    title: str,
    desc: str,
    props: dict[str, Any] | None = None,
    req: list[str] | None = None,
) -> ToolDef:
    return ToolDef(
        name=name,
        title=title,
        description=desc,
        parameters={
            "type": "object",
            "properties": props or {},
            "required": req or [],
            "additionalProperties": False,
        },
    )


def _str(description: str, **extra: Any) -> dict:
    return {"type": "string", "description": description, **extra}


def _bool(description: str, **extra: Any) -> dict:
    return {"type": "boolean", "description": description, **extra}


def _int(description: str, **extra: Any) -> dict:
    return {"type": "integer", "description": description, **extra}


def _num(description: str) -> dict:
    return {"type": "number", "description": description}


def _str_list(description: str) -> dict:
    return {"type": "array", "items": {"type": "string"}, "description": description}


_ORDER = _str("Sort direction", enum=["asc", "desc"], default="desc")
_LIMIT = _int("Maximum number of results", default=20, minimum=1)
_OFFSET = _int("Number of results to skip", default=0, minimum=0)

_WORKFLOW_ID = _str("Workflow ID (defaults to WORKFLOW_ID)")
_PROJECT_ID = _str("Project ID (defaults to PROJECT_ID)")
_POSITION_X = _num("Canvas X position (defaults to the anchor block's X)")
_POSITION_Y = _num("Canvas Y position (defaults to below the anchor block)")


# ==================================================================
# TOOL_CATALOG — single source of truth for all 15 tools.
# Each entry: (method_name_on_TrellisMCPTools, ToolDef)
# ==================================================================

TOOL_CATALOG: list[tuple[str, ToolDef]] = [
    # ── WORKFLOWS (3) ─────────────────────────────────────────────
    ("get_workflow_config", _td(
        "get_workflow_config", "Get Workflow Config",
        "Get the full block and edge graph of the workflow",
        {"workflow_id": _WORKFLOW_ID},
    )),
    ("update_workflow_blocks", _td(
        "update_workflow_blocks", "Update Workflow Blocks",
        "Upsert blocks, delete blocks and replace the edge set of the workflow in one call. "
        "The edge list replaces the existing one entirely.",
        {
            "blocks": {
                "type": "array",
                "items": {"type": "object"},
                "description": "Blocks to create or update",
            },
            "deleted_block_ids": _str_list("IDs of blocks to delete"),
            "edges": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"source": {"type": "string"}, "target": {"type": "string"}},
                    "required": ["source", "target"],
                },
                "description": "Complete edge list of the workflow",
            },
            "workflow_id": _WORKFLOW_ID,
        },
        ["blocks"],
    )),
    ("get_available_action_types", _td(
        "get_available_action_types", "Get Available Action Types",
        "List every action type a workflow block can run",
    )),

    # ── TRANSFORMS (1) ────────────────────────────────────────────
    ("get_transforms", _td(
        "get_transforms", "Get Transforms",
        "List transforms, optionally filtered by search term or IDs",
        {
            "search_term": _str("Substring to search transform names for"),
            "transform_ids": _str_list("Only return these transform IDs"),
            "include_transform_params": _bool("Include transform parameters", default=True),
            "limit": _LIMIT,
            "offset": _OFFSET,
            "order_by": _str("Sort field", enum=["updated_at", "created_at", "id"], default="updated_at"),
            "order": _ORDER,
        },
    )),

    # ── ENTITIES (3) ──────────────────────────────────────────────
    ("get_entities", _td(
        "get_entities", "Get Entities",
        "List entities (tables) in the project",
        {
            "entity_id": _str("Only return this entity"),
            "primary_only": _bool("Only return primary entities", default=False),
            "exclude_playground": _bool("Exclude playground entities", default=False),
            "limit": _LIMIT,
            "offset": _OFFSET,
            "order_by": _str("Sort field", default="updated_at"),
            "order": _ORDER,
            "project_id": _PROJECT_ID,
        },
    )),
    ("get_entity_fields", _td(
        "get_entity_fields", "Get Entity Fields",
        "List the fields (columns) of an entity",
        {
            "entity_id": _str("Entity ID"),
            "entity_field_id": _str("Only return this field"),
        },
        ["entity_id"],
    )),
    ("create_entity", _td(
        "create_entity", "Create Entity",
        "Create a new entity in the project",
        {
            "name": _str("Entity name"),
            "entity_type": _str("Entity type"),
            "project_id": _PROJECT_ID,
        },
        ["name", "entity_type"],
    )),

    # ── COMPOSED BLOCKS (8) ───────────────────────────────────────
    ("add_code_eval_after_block", _td(
        "add_code_eval_after_block", "Add Code Eval After Block",
        "Insert a code evaluation block after an existing block and write its result "
        "into a field of the triggering row",
        {
            "after_block_id": _str("ID of the block to insert after"),
            "entity_name": _str("Name of the entity holding the target field"),
            "target_field_name": _str("Name of the field that receives the result"),
            "code": _str("JavaScript expression evaluated by the block"),
            "workflow_id": _WORKFLOW_ID,
            "project_id": _PROJECT_ID,
        },
        ["after_block_id", "entity_name", "target_field_name", "code"],
    )),
    ("create_row_created_trigger_for_entity", _td(
        "create_row_created_trigger_for_entity", "Create Row Created Trigger",
        "Return the row-created trigger of an entity, creating it if the workflow has none",
        {
            "entity_name": _str("Name of the entity whose new rows start the workflow"),
            "position_x": _num("Canvas X position (default 300)"),
            "position_y": _num("Canvas Y position (default 50)"),
            "workflow_id": _WORKFLOW_ID,
            "project_id": _PROJECT_ID,
        },
        ["entity_name"],
    )),
    ("create_run_transform_block", _td(
        "create_run_transform_block", "Create Run Transform Block",
        "Add a block that runs a transform after an existing block",
        {
            "trigger_block_id": _str("ID of the block to attach after"),
            "transform_name": _str("Name of the transform to run"),
            "position_x": _POSITION_X,
            "position_y": _POSITION_Y,
            "asset_reference_block_id": _str("Block whose asset_ids output feeds the transform"),
            "asset_ids": _str_list("Fixed asset IDs to feed the transform"),
            "workflow_id": _WORKFLOW_ID,
        },
        ["trigger_block_id", "transform_name"],
    )),
    ("add_create_record_block", _td(
        "add_create_record_block", "Add Create Record Block",
        "Add a block that creates a row, mapping field names to template expressions",
        {
            "source_block_id": _str("ID of the block to attach after"),
            "entity_name": _str("Name of the entity to create the row in"),
            "field_mappings": {
                "type": "object",
                "additionalProperties": {"type": "string"},
                "description": "Field name → value expression, e.g. {\"First Name\": \"{{block.output}}\"}",
            },
            "position_x": _POSITION_X,
            "position_y": _POSITION_Y,
            "workflow_id": _WORKFLOW_ID,
            "project_id": _PROJECT_ID,
        },
        ["source_block_id", "entity_name", "field_mappings"],
    )),
    ("create_loop_block_pair", _td(
        "create_loop_block_pair", "Create Loop Block Pair",
        "Add a start loop / end loop block pair after an existing block",
        {
            "source_block_id": _str("ID of the block to attach after"),
            "loop_variable": _str("Name the loop item is bound to"),
            "list_reference": _str("Template expression of the list to iterate"),
            "loop_type": _str("Execution mode", enum=list(LOOP_TYPES), default="concurrent"),
            "position_x": _POSITION_X,
            "position_y": _POSITION_Y,
            "workflow_id": _WORKFLOW_ID,
        },
        ["source_block_id", "loop_variable", "list_reference"],
    )),
    ("create_child_transform_flow", _td(
        "create_child_transform_flow", "Create Child Transform Flow",
        "For each child row of a parent row, run a transform and store its output in a new child row. "
        "Attaches to the parent's row-created trigger unless source_block_id is given.",
        {
            "parent_entity_name": _str("Name of the parent entity"),
            "child_entity_name": _str("Name of the child entity"),
            "transform_name": _str("Name of the transform to run per child"),
            "source_block_id": _str("ID of the block to attach after (defaults to the parent's trigger)"),
            "position_x": _POSITION_X,
            "position_y": _POSITION_Y,
            "workflow_id": _WORKFLOW_ID,
            "project_id": _PROJECT_ID,
        },
        ["parent_entity_name", "child_entity_name", "transform_name"],
    )),
    ("rename_assets_for_row", _td(
        "rename_assets_for_row", "Rename Assets For Row",
        "Rename every asset attached to the triggering row using a name template",
        {
            "source_block_id": _str("ID of the block to attach after"),
            "entity_name": _str("Name of the entity whose row assets are renamed"),
            "name_template": _str("New asset name; may contain template expressions"),
            "position_x": _POSITION_X,
            "position_y": _POSITION_Y,
            "workflow_id": _WORKFLOW_ID,
            "project_id": _PROJECT_ID,
        },
        ["source_block_id", "entity_name", "name_template"],
    )),
    ("sync_child_field_to_parent", _td(
        "sync_child_field_to_parent", "Sync Child Field To Parent",
        "Copy a field of the first child row into a field of the parent row",
        {
            "source_block_id": _str("ID of the block to attach after"),
            "parent_entity_name": _str("Name of the parent entity"),
            "child_entity_name": _str("Name of the child entity"),
            "child_field_name": _str("Field to read on the child"),
            "parent_field_name": _str("Field to write on the parent"),
            "position_x": _POSITION_X,
            "position_y": _POSITION_Y,
            "workflow_id": _WORKFLOW_ID,
            "project_id": _PROJECT_ID,
        },
        ["source_block_id", "parent_entity_name", "child_entity_name", "child_field_name", "parent_field_name"],
    )),
]
