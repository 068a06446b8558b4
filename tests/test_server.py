"""Tests for the MCP protocol binding."""

from unittest.mock import AsyncMock, patch

import mcp.types as types
import pytest

import server
from handlers import build_registry
from registry import Dispatcher


def _server(client: AsyncMock):
    return server.build_server(Dispatcher(build_registry(client)))


@pytest.mark.asyncio
async def test_list_tools_publishes_input_schemas() -> None:
    mcp_server = _server(AsyncMock())

    result = await mcp_server.request_handlers[types.ListToolsRequest](types.ListToolsRequest(method="tools/list"))

    tools = {tool.name: tool for tool in result.root.tools}
    assert "list_patients" in tools
    assert tools["get_patient"].inputSchema["required"] == ["patient_id"]


def _call(name: str, arguments: dict) -> types.CallToolRequest:
    return types.CallToolRequest(method="tools/call", params=types.CallToolRequestParams(name=name, arguments=arguments))


@pytest.mark.asyncio
async def test_call_tool_returns_structured_content() -> None:
    payload = {
        "invoices": [{"id": 1, "number": 1004, "status": "draft", "total": 75.0}],
        "total_entries": 1,
        "links": {},
    }
    client = AsyncMock()
    client.list_invoices.return_value = payload
    mcp_server = _server(client)

    result = await mcp_server.request_handlers[types.CallToolRequest](_call("list_invoices", {}))

    assert not result.root.isError
    assert result.root.structuredContent == payload
    assert result.root.content[0].text.startswith("Found 1 invoices")


@pytest.mark.asyncio
async def test_call_tool_invalid_arguments_is_error() -> None:
    client = AsyncMock()
    mcp_server = _server(client)

    result = await mcp_server.request_handlers[types.CallToolRequest](_call("get_patient", {"patient_id": 0}))

    assert result.root.isError is True
    assert "Invalid arguments for get_patient" in result.root.content[0].text
    client.get_patient.assert_not_awaited()


@pytest.mark.asyncio
async def test_call_unknown_tool_is_error() -> None:
    mcp_server = _server(AsyncMock())

    result = await mcp_server.request_handlers[types.CallToolRequest](_call("nope", {}))

    assert result.root.isError is True
    assert result.root.content[0].text == "Unknown tool: nope"


@pytest.mark.asyncio
async def test_resource_templates_are_listed_separately() -> None:
    mcp_server = _server(AsyncMock())

    templates = await mcp_server.request_handlers[types.ListResourceTemplatesRequest](
        types.ListResourceTemplatesRequest(method="resources/templates/list")
    )
    resources = await mcp_server.request_handlers[types.ListResourcesRequest](
        types.ListResourcesRequest(method="resources/list")
    )

    assert {t.uriTemplate for t in templates.root.resourceTemplates} == {"patient://{id}", "appointment://{id}"}
    assert len(resources.root.resources) == 6


@pytest.mark.asyncio
async def test_read_resource_returns_json_text() -> None:
    client = AsyncMock()
    client.list_businesses.return_value = {"businesses": [{"id": 1}], "total_entries": 1, "links": {}}
    mcp_server = _server(client)

    result = await mcp_server.request_handlers[types.ReadResourceRequest](
        types.ReadResourceRequest(method="resources/read", params=types.ReadResourceRequestParams(uri="businesses://list"))
    )

    [contents] = result.root.contents
    assert contents.mimeType == "application/json"
    assert '"businesses"' in contents.text


@pytest.mark.asyncio
async def test_prompts_are_empty() -> None:
    mcp_server = _server(AsyncMock())

    result = await mcp_server.request_handlers[types.ListPromptsRequest](types.ListPromptsRequest(method="prompts/list"))

    assert result.root.prompts == []


@pytest.mark.asyncio
async def test_missing_api_key_exits() -> None:
    with patch.object(server, "CLINIKO_API_KEY", ""):
        with pytest.raises(SystemExit) as info:
            await server.main()
    assert info.value.code == 1
