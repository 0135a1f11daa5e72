"""Graph composer — builds multi-block additions to an existing workflow.

Every composition follows the same skeleton:

  1. Resolve human names (entity / field / transform) to IDs.  Fail fast.
  2. Read the current graph and locate the anchor block by ID.
  3. Lay new blocks out below the anchor (pattern-specific offsets).
  4. Build typed blocks with fresh temp IDs, wired via ``{{block.field}}``.
  5. Edges = normalized existing edges + anchor → first → ... → last
     (+ start_loop → end_loop for loop patterns).
  6. One PATCH with the new blocks, no deletions and the FULL edge list.
  7. Report IDs through the returned id_mapping (temp ID when unmapped).

The PATCH is always the last call of an invocation, so any resolution or
validation failure leaves the workflow untouched.  The endpoint replaces the
edge set wholesale; submitting only the new edges would silently drop every
existing connection.
"""

from __future__ import annotations

import logging
from typing import Any

from trellis_mcp.client import Settings, TrellisClient
from trellis_mcp.client.parsing import (
    parse_entities,
    parse_fields,
    parse_id_mapping,
    parse_transforms,
    parse_workflow_graph,
)
from trellis_mcp.errors import BlockNotFoundError, NotFoundError, ValidationError
from trellis_mcp.workflow import ids as prefixes
from trellis_mcp.workflow.blocks import (
    ActionBlock,
    CreateRecordAction,
    EndLoopAction,
    EvalCodeAction,
    GetRecordAssetsAction,
    RunTransformAction,
    StartLoopAction,
    TriggerBlock,
    UpdateAssetAction,
    UpdateRecordAction,
    WorkflowBlock,
    WorkflowEdge,
    WorkflowGraph,
    block_position,
    template,
)
from trellis_mcp.workflow.ids import IdGenerator, TimestampIdGenerator
from trellis_mcp.workflow.resolvers import (
    resolve_entity,
    resolve_field,
    resolve_field_ids,
    resolve_transform,
)

logger = logging.getLogger("trellis_mcp.workflow.composer")

LOOP_TYPES: tuple[str, ...] = ("concurrent", "sequential")

# Layout offsets (canvas units, downward from the anchor)
CODE_EVAL_DY: int = 120
UPDATE_AFTER_EVAL_DY: int = 240
STEP_DY: int = 150
LOOP_DY: int = 200
LOOP_BODY_DY: int = 75
LOOP_RECORD_DY: int = 100
LOOP_END_DY: int = 150
RENAME_UPDATE_DY: int = 225
RENAME_END_DY: int = 300
TRIGGER_DEFAULT_X: int = 300
TRIGGER_DEFAULT_Y: int = 50


def _first_child_value_code(child_entity_id: str, child_field_id: str) -> str:
    # Runs inside the workflow engine's JavaScript sandbox.
    return (
        "(() => {\n"
        f'  const list = event.children["{child_entity_id}"] || [];\n'
        "  const first = list[0] || null;\n"
        f'  return first ? first["{child_field_id}"] : null;\n'
        "})()"
    )


def _resolved(mapping: dict[str, str], temp_id: str) -> str:
    return mapping.get(temp_id, temp_id)


def _reject_case_duplicates(field_mappings: dict[str, str]) -> None:
    """Field names resolve ignoring case, so keys equal modulo case would share one field."""
    groups: dict[str, list[str]] = {}
    for name in field_mappings:
        groups.setdefault(name.lower(), []).append(name)
    clashes = [keys for keys in groups.values() if len(keys) > 1]
    if clashes:
        listed = "; ".join(", ".join(f'"{k}"' for k in keys) for keys in clashes)
        raise ValidationError(f"field_mappings keys name the same field: {listed}")


class GraphComposer:
    """Composition patterns over one workflow graph.

    Holds no state between calls: every method re-reads the entities and the
    graph it needs and issues at most one PATCH.
    """

    def __init__(self, client: TrellisClient, settings: Settings, ids: IdGenerator | None = None) -> None:
        self._client = client
        self._settings = settings
        self._ids = ids or TimestampIdGenerator()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _entities(self, project_id: str) -> list[dict[str, Any]]:
        return parse_entities(await self._client.list_entities(project_id))

    async def _fields(self, entity_id: str) -> list[dict[str, Any]]:
        return parse_fields(await self._client.list_entity_fields(entity_id))

    async def _transform(self, transform_name: str) -> dict[str, Any]:
        # search_term is a server-side substring filter; exactness is enforced here.
        raw = await self._client.list_transforms(search_term=transform_name)
        return resolve_transform(parse_transforms(raw), transform_name)

    async def _graph(self, workflow_id: str) -> WorkflowGraph:
        return parse_workflow_graph(await self._client.get_workflow_config(workflow_id))

    @staticmethod
    def _anchor(graph: WorkflowGraph, block_id: str) -> dict[str, Any]:
        block = graph.find_block(block_id)
        if block is None:
            raise BlockNotFoundError(block_id)
        return block

    @staticmethod
    def _place(
        anchor: dict[str, Any],
        position_x: float | None,
        position_y: float | None,
        dy: float,
    ) -> tuple[float, float]:
        base_x, base_y = block_position(anchor)
        x = position_x if position_x is not None else base_x
        y = position_y if position_y is not None else base_y + dy
        return x, y

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def _commit(
        self,
        workflow_id: str,
        graph: WorkflowGraph,
        blocks: list[WorkflowBlock],
        chain: list[str],
        loop: tuple[str, str] | None = None,
    ) -> tuple[Any, dict[str, str]]:
        """PATCH *blocks* plus the existing edges and the *chain* edges.

        chain: block IDs in execution order; one edge per consecutive pair.
        loop:  (start_loop_id, end_loop_id); its edge is added unless the chain
               already contains it.
        """
        new_edges = [WorkflowEdge(source=a, target=b) for a, b in zip(chain, chain[1:])]
        if loop is not None:
            loop_edge = WorkflowEdge(source=loop[0], target=loop[1])
            if loop_edge not in new_edges:
                new_edges.append(loop_edge)

        raw = await self._client.patch_workflow_blocks(
            workflow_id,
            blocks=[b.to_dict() for b in blocks],
            deleted_block_ids=[],
            edges=[e.to_dict() for e in graph.edges + new_edges],
        )
        mapping = parse_id_mapping(raw)
        logger.info(
            "Workflow %s: added %d block(s), %d edge(s); %d id(s) remapped",
            workflow_id, len(blocks), len(new_edges), len(mapping),
        )
        return raw, mapping

    # ------------------------------------------------------------------
    # Block builders shared by several patterns
    # ------------------------------------------------------------------

    def _action(self, workflow_id: str, prefix: str, name: str, x: float, y: float, action: Any) -> ActionBlock:
        return ActionBlock(
            id=self._ids.new_id(prefix),
            workflow_id=workflow_id,
            name=name,
            position={"x": x, "y": y},
            action=action,
        )

    def _trigger(self, workflow_id: str, entity_id: str, x: float, y: float) -> TriggerBlock:
        return TriggerBlock(
            id=self._ids.new_id(prefixes.BLOCK),
            workflow_id=workflow_id,
            entity_id=entity_id,
            trigger_id=self._ids.new_id(prefixes.TRIGGER),
            position={"x": x, "y": y},
        )

    def _loop(
        self,
        workflow_id: str,
        x: float,
        y: float,
        loop_variable: str,
        list_reference: str,
        loop_type: str,
        end_dy: float,
    ) -> tuple[ActionBlock, ActionBlock]:
        start = self._action(
            workflow_id, prefixes.BLOCK, "Start Loop", x, y,
            StartLoopAction(
                config_id=self._ids.new_id(prefixes.LOOP_CFG),
                loop_variable=loop_variable,
                list_reference=list_reference,
                loop_type=loop_type,
            ),
        )
        end = self._action(workflow_id, prefixes.BLOCK, "End Loop", x, y + end_dy, EndLoopAction())
        return start, end

    def _update_record(
        self, workflow_id: str, name: str, x: float, y: float, entity_id: str, mapping: dict[str, str],
    ) -> ActionBlock:
        return self._action(
            workflow_id, prefixes.UPDATE_RECORD, name, x, y,
            UpdateRecordAction(
                entity_id=entity_id,
                record_config_id=self._ids.new_id(prefixes.RECORD_CFG),
                mapping_config_id=self._ids.new_id(prefixes.MAPPING_CFG),
                mapping=mapping,
            ),
        )

    # ==================================================================
    # PATTERNS
    # ==================================================================

    async def insert_computed_field(
        self,
        after_block_id: str,
        entity_name: str,
        target_field_name: str,
        code: str,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        """anchor → eval_code(code) → update_record(field ← eval result)."""
        workflow_id = self._settings.require_workflow_id(workflow_id)
        project_id = self._settings.require_project_id(project_id)

        entity = resolve_entity(await self._entities(project_id), entity_name)
        field = resolve_field(await self._fields(entity["id"]), target_field_name, entity_name)

        graph = await self._graph(workflow_id)
        anchor = self._anchor(graph, after_block_id)
        x, base_y = block_position(anchor)

        code_eval = self._action(
            workflow_id, prefixes.CODE_EVAL, "Code Evaluation", x, base_y + CODE_EVAL_DY,
            EvalCodeAction(config_id=self._ids.new_id(prefixes.CODE_EVAL_CFG), code=code),
        )
        update = self._update_record(
            workflow_id, "Update Record", x, base_y + UPDATE_AFTER_EVAL_DY,
            entity["id"], {field["id"]: template(code_eval.id)},
        )

        raw, mapping = await self._commit(
            workflow_id, graph, [code_eval, update], [after_block_id, code_eval.id, update.id],
        )
        return {
            "code_eval_block_id": _resolved(mapping, code_eval.id),
            "update_record_block_id": _resolved(mapping, update.id),
            "temp_ids": {"code_eval_block_id": code_eval.id, "update_record_block_id": update.id},
            "id_mapping": mapping,
            "patch_result": raw,
        }

    async def create_or_get_trigger(
        self,
        entity_name: str,
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        """Return the entity's row-created trigger, creating it if absent.

        Idempotent: an existing trigger for the entity is returned untouched
        and no write is issued.
        """
        workflow_id = self._settings.require_workflow_id(workflow_id)
        project_id = self._settings.require_project_id(project_id)

        entity = resolve_entity(await self._entities(project_id), entity_name)
        graph = await self._graph(workflow_id)

        existing = graph.trigger_for_entity(entity["id"])
        if existing is not None:
            logger.info("Workflow %s: reusing trigger %s for entity %s", workflow_id, existing.get("id"), entity["id"])
            return {"trigger_block_id": existing.get("id"), "trigger_block": existing, "was_created": False}

        trigger = self._trigger(
            workflow_id,
            entity["id"],
            position_x if position_x is not None else TRIGGER_DEFAULT_X,
            position_y if position_y is not None else TRIGGER_DEFAULT_Y,
        )
        # Entry point: no incoming edge, existing edges resubmitted as-is.
        _raw, mapping = await self._commit(workflow_id, graph, [trigger], [])
        return {
            "trigger_block_id": _resolved(mapping, trigger.id),
            "temp_block_id": trigger.id,
            "trigger_block": trigger.to_dict(),
            "was_created": True,
            "id_mapping": mapping,
        }

    async def create_transform_step(
        self,
        trigger_block_id: str,
        transform_name: str,
        position_x: float | None = None,
        position_y: float | None = None,
        asset_reference_block_id: str | None = None,
        asset_ids: list[str] | None = None,
        workflow_id: str | None = None,
    ) -> dict[str, Any]:
        """anchor → run_transform, assets from a fixed list or another block."""
        if asset_reference_block_id and asset_ids is not None:
            raise ValidationError("asset_reference_block_id and asset_ids are mutually exclusive")
        workflow_id = self._settings.require_workflow_id(workflow_id)

        transform = await self._transform(transform_name)
        graph = await self._graph(workflow_id)
        anchor = self._anchor(graph, trigger_block_id)
        x, y = self._place(anchor, position_x, position_y, STEP_DY)

        block = self._action(
            workflow_id, prefixes.BLOCK, "Run Transform", x, y,
            RunTransformAction(
                transform_id=transform["id"],
                assets_config_id=self._ids.new_id(prefixes.ASSETS_CFG),
                assets_list=list(asset_ids) if asset_ids is not None else None,
                assets_list_reference=(
                    template(asset_reference_block_id, "asset_ids") if asset_reference_block_id else None
                ),
            ),
        )

        _raw, mapping = await self._commit(workflow_id, graph, [block], [trigger_block_id, block.id])
        return {
            "run_transform_block_id": _resolved(mapping, block.id),
            "temp_block_id": block.id,
            "block": block.to_dict(),
            "was_created": True,
            "id_mapping": mapping,
        }

    async def create_record_step(
        self,
        source_block_id: str,
        entity_name: str,
        field_mappings: dict[str, str],
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        """anchor → create_record, human field names resolved to field IDs."""
        workflow_id = self._settings.require_workflow_id(workflow_id)
        project_id = self._settings.require_project_id(project_id)
        _reject_case_duplicates(field_mappings)

        entity = resolve_entity(await self._entities(project_id), entity_name)
        field_ids = resolve_field_ids(await self._fields(entity["id"]), list(field_mappings), entity_name)
        mapping_by_id = {field_ids[name]: expr for name, expr in field_mappings.items()}

        graph = await self._graph(workflow_id)
        anchor = self._anchor(graph, source_block_id)
        x, y = self._place(anchor, position_x, position_y, STEP_DY)

        block = self._action(
            workflow_id, prefixes.BLOCK, "Create Record", x, y,
            CreateRecordAction(
                entity_id=entity["id"],
                mapping_config_id=self._ids.new_id(prefixes.MAPPING_CFG),
                mapping=mapping_by_id,
            ),
        )

        _raw, mapping = await self._commit(workflow_id, graph, [block], [source_block_id, block.id])
        return {
            "create_record_block_id": _resolved(mapping, block.id),
            "temp_block_id": block.id,
            "block": block.to_dict(),
            "was_created": True,
            "id_mapping": mapping,
        }

    async def create_loop_pair(
        self,
        source_block_id: str,
        loop_variable: str,
        list_reference: str,
        loop_type: str = "concurrent",
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
    ) -> dict[str, Any]:
        """anchor → start_loop → end_loop."""
        if loop_type not in LOOP_TYPES:
            raise ValidationError(f"loop_type must be one of {list(LOOP_TYPES)}, got {loop_type!r}")
        workflow_id = self._settings.require_workflow_id(workflow_id)

        graph = await self._graph(workflow_id)
        anchor = self._anchor(graph, source_block_id)
        x, y = self._place(anchor, position_x, position_y, LOOP_DY)
        start, end = self._loop(workflow_id, x, y, loop_variable, list_reference, loop_type, LOOP_END_DY)

        _raw, mapping = await self._commit(
            workflow_id, graph, [start, end], [source_block_id, start.id, end.id], loop=(start.id, end.id),
        )
        return {
            "start_loop_block_id": _resolved(mapping, start.id),
            "end_loop_block_id": _resolved(mapping, end.id),
            "temp_start_loop_block_id": start.id,
            "temp_end_loop_block_id": end.id,
            "start_loop_block": start.to_dict(),
            "end_loop_block": end.to_dict(),
            "was_created": True,
            "id_mapping": mapping,
        }

    async def create_child_transform_flow(
        self,
        parent_entity_name: str,
        child_entity_name: str,
        transform_name: str,
        source_block_id: str | None = None,
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        """For each child row of the parent: run a transform, store its output.

        anchor → start_loop → run_transform → create_record → end_loop, where
        the anchor is *source_block_id* or the parent's row-created trigger
        (created in the same PATCH when missing).  The transform output lands
        in the child entity's first field.
        """
        workflow_id = self._settings.require_workflow_id(workflow_id)
        project_id = self._settings.require_project_id(project_id)

        entities = await self._entities(project_id)
        parent = resolve_entity(entities, parent_entity_name)
        child = resolve_entity(entities, child_entity_name)
        transform = await self._transform(transform_name)
        child_fields = await self._fields(child["id"])
        if not child_fields:
            raise NotFoundError(f'No fields found for child entity "{child_entity_name}"')
        first_field_id = child_fields[0]["id"]

        graph = await self._graph(workflow_id)
        blocks: list[WorkflowBlock] = []
        trigger_created = False
        if source_block_id:
            anchor = self._anchor(graph, source_block_id)
            anchor_id = source_block_id
        else:
            anchor = graph.trigger_for_entity(parent["id"])
            if anchor is None:
                trigger = self._trigger(workflow_id, parent["id"], TRIGGER_DEFAULT_X, TRIGGER_DEFAULT_Y)
                blocks.append(trigger)
                anchor = trigger.to_dict()
                trigger_created = True
            anchor_id = anchor["id"]

        x, y = self._place(anchor, position_x, position_y, LOOP_DY)
        start, end = self._loop(
            workflow_id, x, y, "list", template(anchor_id, f"children.{child['id']}"), "concurrent", LOOP_END_DY,
        )
        run = self._action(
            workflow_id, prefixes.BLOCK, "Run Transform", x, y + LOOP_BODY_DY,
            RunTransformAction(transform_id=transform["id"], assets_config_id=self._ids.new_id(prefixes.ASSETS_CFG)),
        )
        create = self._action(
            workflow_id, prefixes.BLOCK, "Create Record", x, y + LOOP_RECORD_DY,
            CreateRecordAction(
                entity_id=child["id"],
                mapping_config_id=self._ids.new_id(prefixes.MAPPING_CFG),
                mapping={first_field_id: template(run.id, "output")},
            ),
        )
        blocks.extend([start, run, create, end])

        _raw, mapping = await self._commit(
            workflow_id, graph, blocks,
            [anchor_id, start.id, run.id, create.id, end.id],
            loop=(start.id, end.id),
        )
        return {
            "source_block_id": _resolved(mapping, anchor_id),
            "start_loop_block_id": _resolved(mapping, start.id),
            "run_transform_block_id": _resolved(mapping, run.id),
            "create_record_block_id": _resolved(mapping, create.id),
            "end_loop_block_id": _resolved(mapping, end.id),
            "was_trigger_created": trigger_created,
            "id_mapping": mapping,
        }

    async def create_rename_assets_flow(
        self,
        source_block_id: str,
        entity_name: str,
        name_template: str,
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        """anchor → get_record_assets → start_loop → update_asset → end_loop."""
        workflow_id = self._settings.require_workflow_id(workflow_id)
        project_id = self._settings.require_project_id(project_id)

        entity = resolve_entity(await self._entities(project_id), entity_name)
        graph = await self._graph(workflow_id)
        anchor = self._anchor(graph, source_block_id)
        x, y = self._place(anchor, position_x, position_y, STEP_DY)

        get_assets = self._action(
            workflow_id, prefixes.BLOCK, "Get Record Assets", x, y,
            GetRecordAssetsAction(entity_id=entity["id"], record_config_id=self._ids.new_id(prefixes.RECORD_CFG)),
        )
        start, end = self._loop(
            workflow_id, x, y + STEP_DY, "list", template(get_assets.id, "asset_ids"), "concurrent",
            RENAME_END_DY - STEP_DY,
        )
        rename = self._action(
            workflow_id, prefixes.BLOCK, "Rename Asset", x, y + RENAME_UPDATE_DY,
            UpdateAssetAction(config_id=self._ids.new_id(prefixes.UPDATE_ASSET_CFG), new_name=name_template),
        )

        _raw, mapping = await self._commit(
            workflow_id, graph, [get_assets, start, rename, end],
            [source_block_id, get_assets.id, start.id, rename.id, end.id],
            loop=(start.id, end.id),
        )
        return {
            "get_assets_block_id": _resolved(mapping, get_assets.id),
            "start_loop_block_id": _resolved(mapping, start.id),
            "update_asset_block_id": _resolved(mapping, rename.id),
            "end_loop_block_id": _resolved(mapping, end.id),
            "temp_get_assets_block_id": get_assets.id,
            "temp_start_loop_block_id": start.id,
            "temp_update_asset_block_id": rename.id,
            "temp_end_loop_block_id": end.id,
            "id_mapping": mapping,
        }

    async def create_sync_child_to_parent_flow(
        self,
        source_block_id: str,
        parent_entity_name: str,
        child_entity_name: str,
        child_field_name: str,
        parent_field_name: str,
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        """anchor → eval_code(first child's field) → update_record(parent field)."""
        workflow_id = self._settings.require_workflow_id(workflow_id)
        project_id = self._settings.require_project_id(project_id)

        entities = await self._entities(project_id)
        parent = resolve_entity(entities, parent_entity_name)
        child = resolve_entity(entities, child_entity_name)
        child_field = resolve_field(await self._fields(child["id"]), child_field_name, child_entity_name)
        parent_field = resolve_field(await self._fields(parent["id"]), parent_field_name, parent_entity_name)

        graph = await self._graph(workflow_id)
        anchor = self._anchor(graph, source_block_id)
        x, y = self._place(anchor, position_x, position_y, STEP_DY)

        extract = self._action(
            workflow_id, prefixes.CODE_EVAL, "Extract Child Field", x, y,
            EvalCodeAction(
                config_id=self._ids.new_id(prefixes.CODE_EVAL_CFG),
                code=_first_child_value_code(child["id"], child_field["id"]),
            ),
        )
        update = self._update_record(
            workflow_id, "Update Parent From Child", x, y + STEP_DY,
            parent["id"], {parent_field["id"]: template(extract.id)},
        )

        _raw, mapping = await self._commit(
            workflow_id, graph, [extract, update], [source_block_id, extract.id, update.id],
        )
        return {
            "code_eval_block_id": _resolved(mapping, extract.id),
            "update_record_block_id": _resolved(mapping, update.id),
            "temp_ids": {"code_eval_block_id": extract.id, "update_record_block_id": update.id},
            "id_mapping": mapping,
        }
