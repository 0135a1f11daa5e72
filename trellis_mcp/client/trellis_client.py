"""Async Trellis workflow REST API client using httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from trellis_mcp.client.config import Settings
from trellis_mcp.errors import UnexpectedShapeError, UpstreamError

logger = logging.getLogger("trellis_mcp.client")


def _query(**params: Any) -> dict[str, Any]:
    """Drop unset filters so they never reach the query string."""
    return {k: v for k, v in params.items() if v is not None and v != []}


class TrellisClient:
    """Thin async wrapper around the Trellis workflow REST API.

    Every method returns the decoded JSON body unchanged.  Envelope handling
    lives in ``trellis_mcp.client.parsing``; this class owns no state beyond
    the connection pool.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.api_base,
            headers=settings.headers,
            timeout=httpx.Timeout(settings.timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        logger.debug("%s %s params=%s", method, path, params)
        try:
            r = await self._client.request(method, path, params=params or None, json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("%s %s -> %s", method, path, status)
            raise UpstreamError(f"HTTP {status}", status_code=status, body=_body(e.response)) from e
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise UpstreamError(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__) from e
        if not r.text.strip():
            return {"success": True}
        try:
            return r.json()
        except ValueError as e:
            raise UnexpectedShapeError(f"{method} {path}", r.text) from e

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        return await self._request("POST", path, payload=payload)

    async def _patch(self, path: str, payload: dict[str, Any]) -> Any:
        return await self._request("PATCH", path, payload=payload)

    # ==================================================================
    # ENTITIES
    # ==================================================================

    async def list_entities(
        self,
        project_id: str,
        entity_id: str | None = None,
        primary_only: bool | None = None,
        exclude_playground: bool | None = None,
        limit: int | None = None,
        offset: int | None = None,
        order_by: str | None = None,
        order: str | None = None,
    ) -> Any:
        params = _query(
            project_id=project_id,
            entity_id=entity_id or None,
            primary_only=primary_only,
            exclude_playground=exclude_playground,
            limit=limit,
            offset=offset,
            order_by=order_by or None,
            order=order or None,
        )
        return await self._get("/entities", params)

    async def list_entity_fields(self, entity_id: str, entity_field_id: str | None = None) -> Any:
        params = _query(entity_field_id=entity_field_id or None)
        return await self._get(f"/entities/{entity_id}/fields", params)

    async def create_entity(self, name: str, entity_type: str, project_id: str) -> Any:
        return await self._post(
            "/v1/entities",
            {"name": name, "entity_type": entity_type, "project_id": project_id},
        )

    # ==================================================================
    # TRANSFORMS
    # ==================================================================

    async def list_transforms(
        self,
        search_term: str | None = None,
        transform_ids: list[str] | None = None,
        include_transform_params: bool | None = None,
        limit: int | None = None,
        offset: int | None = None,
        order_by: str | None = None,
        order: str | None = None,
    ) -> Any:
        # httpx repeats list values: ?transform_ids=a&transform_ids=b
        params = _query(
            search_term=search_term or None,
            transform_ids=list(transform_ids) if transform_ids else None,
            include_transform_params=include_transform_params,
            limit=limit,
            offset=offset,
            order_by=order_by or None,
            order=order or None,
        )
        return await self._get("/transforms", params)

    # ==================================================================
    # WORKFLOWS
    # ==================================================================

    async def get_workflow_config(self, workflow_id: str) -> Any:
        return await self._get(f"/workflows/{workflow_id}/config")

    async def patch_workflow_blocks(
        self,
        workflow_id: str,
        blocks: list[dict[str, Any]],
        deleted_block_ids: list[str] | None = None,
        edges: list[dict[str, Any]] | None = None,
    ) -> Any:
        payload = {
            "blocks": blocks,
            "deleted_block_ids": deleted_block_ids or [],
            "edges": edges or [],
        }
        logger.info(
            "PATCH workflow %s: %d block(s), %d deletion(s), %d edge(s)",
            workflow_id, len(payload["blocks"]), len(payload["deleted_block_ids"]), len(payload["edges"]),
        )
        return await self._patch(f"/workflows/{workflow_id}/blocks", payload)


def _body(response: httpx.Response) -> Any:
    """Decoded JSON error body if the upstream sent one, else the raw text."""
    try:
        return response.json()
    except ValueError:
        return response.text
