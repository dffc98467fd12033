"""MCP server contract tests via call_tool()."""

import json
from typing import Any

import pytest
from conftest import FakeTracker
from mcp.types import CallToolRequest, CallToolRequestParams, CallToolResult

from linear_mcp import server
from linear_mcp.config import Settings
from linear_mcp.operations import NO_PROJECTS_MESSAGE


def _parse(result: list[Any]) -> Any:
    assert len(result) == 1
    return json.loads(result[0].text)


async def _dispatch(name: str, arguments: dict[str, Any]) -> CallToolResult:
    """Send a tools/call request through the protocol handler."""
    handler = server.server.request_handlers[CallToolRequest]
    request = CallToolRequest(method="tools/call", params=CallToolRequestParams(name=name, arguments=arguments))
    return (await handler(request)).root


@pytest.fixture
def configured(tracker: FakeTracker, monkeypatch: pytest.MonkeyPatch) -> FakeTracker:
    """Configure the server with a fake tracker, restoring it afterwards."""
    monkeypatch.setattr(server, "_settings", None)
    monkeypatch.setattr(server, "_client_factory", None)
    server.configure(Settings(api_key="lin_api_test"), client_factory=lambda: tracker)
    return tracker


async def test_list_tools() -> None:
    """Test that every Linear tool is advertised."""
    tools = await server.list_tools()

    assert {tool.name for tool in tools} == {
        "get-linear-tickets",
        "get-linear-projects",
        "get-linear-ticket",
        "get-linear-project",
        "update-linear-ticket",
        "update-linear-project",
        "get-linear-workflow-states",
    }


async def test_get_ticket(configured: FakeTracker) -> None:
    """Test a successful call returns JSON and closes the client."""
    data = _parse(await server.call_tool("get-linear-ticket", {"ticketId": "PLA-524"}))

    assert data["key"] == "PLA-524"
    assert data["state"]["name"] == "Todo"
    assert configured.closed


async def test_update_ticket_done(configured: FakeTracker) -> None:
    """Test marking a ticket done through the server."""
    data = _parse(await server.call_tool("update-linear-ticket", {"ticketId": "PLA-524", "stateId": "done"}))

    assert data["success"] is True
    assert data["ticket"]["state"]["name"] == "Done"


async def test_unknown_tool(configured: FakeTracker) -> None:
    """Test the unknown tool payload."""
    data = _parse(await server.call_tool("delete-linear-ticket", {}))

    assert data == {"error": "Unknown tool: delete-linear-ticket", "code": "unknown_tool"}


async def test_invalid_input(configured: FakeTracker) -> None:
    """Test that validation errors become error payloads."""
    data = _parse(await server.call_tool("update-linear-ticket", {"ticketId": "PLA-524", "priority": 9}))

    assert data == {"error": "Priority must be between 0 and 4", "code": "invalid_input"}
    assert configured.calls == []


async def test_not_found(configured: FakeTracker) -> None:
    """Test that missing tickets become error payloads."""
    configured.graph = {"issues": {"nodes": []}}

    data = _parse(await server.call_tool("get-linear-ticket", {"ticketId": "ABC-7"}))

    assert data == {"error": "Ticket not found: ABC-7", "code": "not_found"}


async def test_no_arguments(configured: FakeTracker) -> None:
    """Test that missing arguments are treated as empty."""
    data = _parse(await server.call_tool("get-linear-workflow-states", None))

    assert data["code"] == "invalid_input"


async def test_empty_projects_message(configured: FakeTracker) -> None:
    """Test that an empty project listing returns plain text."""
    configured.graph = {"projects": {"nodes": []}}

    result = await server.call_tool("get-linear-projects", {})

    assert result[0].text == NO_PROJECTS_MESSAGE


async def test_unexpected_errors_propagate(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that non-tracker errors are raised to the protocol layer."""

    def broken_factory() -> FakeTracker:
        raise RuntimeError("no client")

    monkeypatch.setattr(server, "_settings", None)
    monkeypatch.setattr(server, "_client_factory", None)
    server.configure(Settings(api_key="lin_api_test"), client_factory=broken_factory)

    with pytest.raises(RuntimeError, match="no client"):
        await server.call_tool("get-linear-ticket", {"ticketId": "PLA-524"})


async def test_unconfigured_server(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that calls fail until the server is configured."""
    monkeypatch.setattr(server, "_settings", None)
    monkeypatch.setattr(server, "_client_factory", None)

    with pytest.raises(RuntimeError, match="Server not configured"):
        await server.call_tool("get-linear-ticket", {"ticketId": "PLA-524"})


async def test_dispatch_clamps_limit(configured: FakeTracker) -> None:
    """Test that an oversized limit reaches the operation and is clamped."""
    configured.graph = {"issues": {"nodes": []}}

    result = await _dispatch("get-linear-tickets", {"limit": 100})

    assert not result.isError
    assert _parse(result.content) == {"tickets": [], "total": 0}
    assert configured.calls_to("raw_query")[0][2]["first"] == 50


@pytest.mark.parametrize(
    "name,arguments,message",
    [
        ("update-linear-ticket", {"ticketId": "PLA-524", "priority": 9}, "Priority must be between 0 and 4"),
        ("update-linear-project", {"projectId": "proj-1", "progress": 1.5}, "Progress must be between 0 and 1"),
        ("get-linear-ticket", {}, "Ticket ID or key is required"),
    ],
)
async def test_dispatch_reports_invalid_input(
    configured: FakeTracker, name: str, arguments: dict[str, Any], message: str
) -> None:
    """Test that bad arguments come back as invalid_input payloads through the protocol handler."""
    result = await _dispatch(name, arguments)

    assert _parse(result.content) == {"error": message, "code": "invalid_input"}
    assert configured.calls == []
