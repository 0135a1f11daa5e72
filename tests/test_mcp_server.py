"""MCP server — registry-driven listing, single dispatch and the HTTP app."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from mcp import types

from trellis_mcp.mcp.registry import TOOL_CATALOG
from trellis_mcp.mcp.results import ToolResult
from trellis_mcp.mcp.server import _serialize, _structured, create_app, create_server
from trellis_mcp.mcp.tools import TrellisMCPTools


def _ok(data) -> ToolResult:
    return ToolResult(ok=True, summary="done", data=data)


def _call(name: str, arguments: dict | None = None) -> types.CallToolRequest:
    return types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments or {}),
    )


@pytest.fixture
def mock_tools():
    tools = MagicMock(spec=TrellisMCPTools)
    tools.get_entities = AsyncMock(return_value=_ok([{"id": "e1", "name": "Referral"}]))
    tools.get_workflow_config = AsyncMock(return_value=_ok({"nodes": [], "edges": []}))
    tools.create_entity = AsyncMock(return_value=ToolResult(
        ok=False,
        summary='Error creating entity: {\n  "error": "duplicate"\n}',
        data=None,
    ))
    tools.get_entity_fields = AsyncMock(return_value=_ok([]))
    return tools


# ---------------------------------------------------------------------------
# list_tools handler
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_tools_returns_catalog(mock_tools):
    server = create_server(mock_tools)

    handler = server.request_handlers[types.ListToolsRequest]
    server_result = await handler(types.ListToolsRequest(method="tools/list"))
    tool_list = server_result.root.tools

    assert [t.name for t in tool_list] == [td.name for _m, td in TOOL_CATALOG]
    first = tool_list[0]
    assert first.name == "get_workflow_config"
    assert first.title == "Get Workflow Config"
    assert first.inputSchema["type"] == "object"


# ---------------------------------------------------------------------------
# call_tool handler
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_call_tool_list_payload(mock_tools):
    server = create_server(mock_tools)
    handler = server.request_handlers[types.CallToolRequest]

    server_result = await handler(_call("get_entities", {"limit": 5}))

    mock_tools.get_entities.assert_awaited_once_with(limit=5)
    result = server_result.root
    assert result.isError is False
    assert json.loads(result.content[0].text) == [{"id": "e1", "name": "Referral"}]
    assert result.structuredContent == {"result": [{"id": "e1", "name": "Referral"}]}


@pytest.mark.asyncio
async def test_call_tool_dict_payload(mock_tools):
    server = create_server(mock_tools)
    handler = server.request_handlers[types.CallToolRequest]

    server_result = await handler(_call("get_workflow_config"))

    assert server_result.root.isError is False
    assert server_result.root.structuredContent == {"nodes": [], "edges": []}


@pytest.mark.asyncio
async def test_call_tool_failure_is_error_result(mock_tools):
    server = create_server(mock_tools)
    handler = server.request_handlers[types.CallToolRequest]

    server_result = await handler(_call("create_entity", {"name": "Referral", "entity_type": "table"}))

    result = server_result.root
    assert result.isError is True
    assert len(result.content) == 1
    assert result.content[0].text == 'Error creating entity: {\n  "error": "duplicate"\n}'
    assert "Traceback" not in result.content[0].text


@pytest.mark.asyncio
async def test_call_tool_unknown_name(mock_tools):
    server = create_server(mock_tools)
    handler = server.request_handlers[types.CallToolRequest]

    server_result = await handler(_call("nonexistent_tool"))

    assert server_result.root.isError is True
    assert "Unknown tool: nonexistent_tool" in server_result.root.content[0].text


@pytest.mark.asyncio
async def test_call_tool_missing_required_argument(mock_tools):
    server = create_server(mock_tools)
    handler = server.request_handlers[types.CallToolRequest]

    server_result = await handler(_call("get_entity_fields", {}))

    assert server_result.root.isError is True
    mock_tools.get_entity_fields.assert_not_awaited()


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def test_serialize_is_indented_json():
    assert _serialize(_ok({"a": 1})) == '{\n  "a": 1\n}'


def test_structured_wraps_non_objects():
    assert _structured(_ok(["x"])) == {"result": ["x"]}
    assert _structured(_ok("text")) == {"result": "text"}
    assert _structured(_ok({"k": "v"})) == {"k": "v"}


# ---------------------------------------------------------------------------
# HTTP app
# ---------------------------------------------------------------------------


def test_health(mock_tools):
    app = create_app(create_server(mock_tools))
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "server": "trellis", "tools": 15}
    assert any(getattr(r, "path", None) == "/mcp" for r in app.routes)


def test_tools_list_over_streamable_http(mock_tools):
    app = create_app(create_server(mock_tools))

    with TestClient(app) as http:
        response = http.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {}},
            headers={"Accept": "application/json, text/event-stream"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == 1
    assert len(body["result"]["tools"]) == 15


def test_entrypoint_importable():
    import trellis_mcp.mcp.__main__  # noqa: F401
