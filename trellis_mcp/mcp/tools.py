"""Trellis MCP tool surface — 15 tools.

Each method wraps a ``TrellisClient`` call or a ``GraphComposer`` pattern and
returns a ``ToolResult`` envelope.  ``@_boundary`` is the single place where
exceptions become error envelopes: nothing raised below it escapes to the
transport.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable

from trellis_mcp.client import Settings, TrellisClient
from trellis_mcp.client.parsing import (
    parse_entities,
    parse_fields,
    parse_transforms,
    parse_workflow_graph,
)
from trellis_mcp.errors import TrellisError, ValidationError
from trellis_mcp.mcp.results import ToolResult
from trellis_mcp.workflow.composer import GraphComposer
from trellis_mcp.workflow.constants import available_action_types
from trellis_mcp.workflow.ids import IdGenerator

logger = logging.getLogger("trellis_mcp.mcp.tools")


def _ok(summary: str, data: Any) -> ToolResult:
    return ToolResult(ok=True, summary=summary, data=data)


def _fail(activity: str, exc: BaseException) -> ToolResult:
    if isinstance(exc, TrellisError):
        detail = exc.detail
    else:
        detail = str(exc) or type(exc).__name__
    return ToolResult(ok=False, summary=f"Error {activity}: {detail}", data=None)


def _boundary(activity: str) -> Callable[[Callable[..., Awaitable[ToolResult]]], Callable[..., Awaitable[ToolResult]]]:
    """Convert any exception raised by the wrapped tool into ``_fail(activity, e)``."""

    def decorator(fn: Callable[..., Awaitable[ToolResult]]) -> Callable[..., Awaitable[ToolResult]]:
        @functools.wraps(fn)
        async def wrapper(self: TrellisMCPTools, *args: Any, **kwargs: Any) -> ToolResult:
            try:
                return await fn(self, *args, **kwargs)
            except TrellisError as e:
                logger.warning("%s failed: %s", fn.__name__, e)
                return _fail(activity, e)
            except Exception as e:
                logger.exception("%s raised unexpectedly", fn.__name__)
                return _fail(activity, e)

        return wrapper

    return decorator


class TrellisMCPTools:
    """15 Trellis workflow tools returning ``ToolResult`` envelopes."""

    def __init__(
        self,
        client: TrellisClient,
        settings: Settings,
        ids: IdGenerator | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._composer = GraphComposer(client, settings, ids=ids)

    # ==================================================================
    # WORKFLOWS
    # ==================================================================

    @_boundary("retrieving workflow config")
    async def get_workflow_config(self, workflow_id: str | None = None) -> ToolResult:
        workflow_id = self._settings.require_workflow_id(workflow_id)
        raw = await self._client.get_workflow_config(workflow_id)
        graph = parse_workflow_graph(raw)
        return _ok(
            f"Workflow {workflow_id}: {len(graph.nodes)} block(s), {len(graph.edges)} edge(s)",
            graph.to_dict(),
        )

    @_boundary("updating workflow blocks")
    async def update_workflow_blocks(
        self,
        blocks: list[dict[str, Any]],
        deleted_block_ids: list[str] | None = None,
        edges: list[dict[str, Any]] | None = None,
        workflow_id: str | None = None,
    ) -> ToolResult:
        if not isinstance(blocks, list):
            raise ValidationError("blocks must be an array of block objects")
        workflow_id = self._settings.require_workflow_id(workflow_id)
        raw = await self._client.patch_workflow_blocks(
            workflow_id,
            blocks=blocks,
            deleted_block_ids=deleted_block_ids or [],
            edges=edges or [],
        )
        return _ok(
            f"Updated workflow {workflow_id}: {len(blocks)} block(s), "
            f"{len(deleted_block_ids or [])} deletion(s), {len(edges or [])} edge(s)",
            raw,
        )

    @_boundary("retrieving available action types")
    async def get_available_action_types(self) -> ToolResult:
        types = available_action_types()
        return _ok(f"{len(types)} workflow action types", types)

    # ==================================================================
    # TRANSFORMS
    # ==================================================================

    @_boundary("retrieving transforms")
    async def get_transforms(
        self,
        search_term: str | None = None,
        transform_ids: list[str] | None = None,
        include_transform_params: bool = True,
        limit: int = 20,
        offset: int = 0,
        order_by: str = "updated_at",
        order: str = "desc",
    ) -> ToolResult:
        raw = await self._client.list_transforms(
            search_term=search_term,
            transform_ids=transform_ids,
            include_transform_params=include_transform_params,
            limit=limit,
            offset=offset,
            order_by=order_by,
            order=order,
        )
        transforms = parse_transforms(raw)
        return _ok(f"Listed {len(transforms)} transforms", transforms)

    # ==================================================================
    # ENTITIES
    # ==================================================================

    @_boundary("retrieving entities")
    async def get_entities(
        self,
        entity_id: str | None = None,
        primary_only: bool = False,
        exclude_playground: bool = False,
        limit: int = 20,
        offset: int = 0,
        order_by: str = "updated_at",
        order: str = "desc",
        project_id: str | None = None,
    ) -> ToolResult:
        project_id = self._settings.require_project_id(project_id)
        raw = await self._client.list_entities(
            project_id,
            entity_id=entity_id,
            primary_only=primary_only,
            exclude_playground=exclude_playground,
            limit=limit,
            offset=offset,
            order_by=order_by,
            order=order,
        )
        entities = parse_entities(raw)
        return _ok(f"Listed {len(entities)} entities in project {project_id}", entities)

    @_boundary("retrieving entity fields")
    async def get_entity_fields(self, entity_id: str, entity_field_id: str | None = None) -> ToolResult:
        raw = await self._client.list_entity_fields(entity_id, entity_field_id=entity_field_id)
        fields = parse_fields(raw)
        return _ok(f"Listed {len(fields)} fields on entity {entity_id}", fields)

    @_boundary("creating entity")
    async def create_entity(self, name: str, entity_type: str, project_id: str | None = None) -> ToolResult:
        if not name.strip():
            raise ValidationError("name must not be empty")
        project_id = self._settings.require_project_id(project_id)
        raw = await self._client.create_entity(name, entity_type, project_id)
        eid = raw.get("id", "?") if isinstance(raw, dict) else "?"
        return _ok(f"Created entity {eid} ({name})", raw)

    # ==================================================================
    # COMPOSED BLOCKS
    # ==================================================================

    @_boundary("adding code eval after block")
    async def add_code_eval_after_block(
        self,
        after_block_id: str,
        entity_name: str,
        target_field_name: str,
        code: str,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> ToolResult:
        result = await self._composer.insert_computed_field(
            after_block_id, entity_name, target_field_name, code,
            workflow_id=workflow_id, project_id=project_id,
        )
        return _ok(
            f"Added code eval {result['code_eval_block_id']} → update record "
            f"{result['update_record_block_id']} after {after_block_id}",
            result,
        )

    @_boundary("creating row created trigger")
    async def create_row_created_trigger_for_entity(
        self,
        entity_name: str,
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> ToolResult:
        result = await self._composer.create_or_get_trigger(
            entity_name, position_x=position_x, position_y=position_y,
            workflow_id=workflow_id, project_id=project_id,
        )
        verb = "Created" if result["was_created"] else "Found existing"
        return _ok(
            f"{verb} row created trigger {result['trigger_block_id']} for '{entity_name}'",
            result,
        )

    @_boundary("creating run transform block")
    async def create_run_transform_block(
        self,
        trigger_block_id: str,
        transform_name: str,
        position_x: float | None = None,
        position_y: float | None = None,
        asset_reference_block_id: str | None = None,
        asset_ids: list[str] | None = None,
        workflow_id: str | None = None,
    ) -> ToolResult:
        result = await self._composer.create_transform_step(
            trigger_block_id, transform_name,
            position_x=position_x, position_y=position_y,
            asset_reference_block_id=asset_reference_block_id, asset_ids=asset_ids,
            workflow_id=workflow_id,
        )
        return _ok(
            f"Added run transform {result['run_transform_block_id']} ('{transform_name}') after {trigger_block_id}",
            result,
        )

    @_boundary("creating create_record block")
    async def add_create_record_block(
        self,
        source_block_id: str,
        entity_name: str,
        field_mappings: dict[str, str],
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> ToolResult:
        result = await self._composer.create_record_step(
            source_block_id, entity_name, field_mappings,
            position_x=position_x, position_y=position_y,
            workflow_id=workflow_id, project_id=project_id,
        )
        return _ok(
            f"Added create record {result['create_record_block_id']} for '{entity_name}' after {source_block_id}",
            result,
        )

    @_boundary("creating loop block pair")
    async def create_loop_block_pair(
        self,
        source_block_id: str,
        loop_variable: str,
        list_reference: str,
        loop_type: str = "concurrent",
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
    ) -> ToolResult:
        result = await self._composer.create_loop_pair(
            source_block_id, loop_variable, list_reference,
            loop_type=loop_type, position_x=position_x, position_y=position_y,
            workflow_id=workflow_id,
        )
        return _ok(
            f"Added {loop_type} loop {result['start_loop_block_id']} → {result['end_loop_block_id']} "
            f"after {source_block_id}",
            result,
        )

    @_boundary("creating child transform flow")
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
    ) -> ToolResult:
        result = await self._composer.create_child_transform_flow(
            parent_entity_name, child_entity_name, transform_name,
            source_block_id=source_block_id, position_x=position_x, position_y=position_y,
            workflow_id=workflow_id, project_id=project_id,
        )
        return _ok(
            f"Added child transform flow for '{child_entity_name}' under '{parent_entity_name}' "
            f"after {result['source_block_id']}",
            result,
        )

    @_boundary("creating rename assets flow")
    async def rename_assets_for_row(
        self,
        source_block_id: str,
        entity_name: str,
        name_template: str,
        position_x: float | None = None,
        position_y: float | None = None,
        workflow_id: str | None = None,
        project_id: str | None = None,
    ) -> ToolResult:
        result = await self._composer.create_rename_assets_flow(
            source_block_id, entity_name, name_template,
            position_x=position_x, position_y=position_y,
            workflow_id=workflow_id, project_id=project_id,
        )
        return _ok(
            f"Added rename assets flow for '{entity_name}' after {source_block_id}",
            result,
        )

    @_boundary("syncing child field to parent")
    async def sync_child_field_to_parent(
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
    ) -> ToolResult:
        result = await self._composer.create_sync_child_to_parent_flow(
            source_block_id, parent_entity_name, child_entity_name, child_field_name, parent_field_name,
            position_x=position_x, position_y=position_y,
            workflow_id=workflow_id, project_id=project_id,
        )
        return _ok(
            f"Added sync of {child_entity_name}.{child_field_name} → {parent_entity_name}.{parent_field_name} "
            f"after {source_block_id}",
            result,
        )
