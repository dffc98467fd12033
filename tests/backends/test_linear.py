"""Tests for the Linear GraphQL backend."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from linear_mcp.backends.linear import LINEAR_GRAPHQL_ENDPOINT, LinearAPIError, LinearClient


def make_client(
    respond: Callable[[dict[str, Any]], httpx.Response], requests: list[httpx.Request] | None = None
) -> LinearClient:
    """Create a client whose HTTP calls are answered by ``respond``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return respond(json.loads(request.content))

    return LinearClient("lin_api_test", transport=httpx.MockTransport(handler))


def test_missing_api_key() -> None:
    """Test that a client cannot be created without a key."""
    with pytest.raises(ValueError, match="Linear API key required"):
        LinearClient("")


def test_find_many_sends_filter_and_limit() -> None:
    """Test the structured connection query."""
    requests: list[httpx.Request] = []
    client = make_client(
        lambda body: httpx.Response(200, json={"data": {"teams": {"nodes": [{"id": "t1", "name": "Platform"}]}}}),
        requests,
    )

    records = client.find_many("team", {"key": {"eq": "PLA"}}, limit=5)

    assert records == [{"id": "t1", "name": "Platform"}]
    request = requests[0]
    assert str(request.url) == LINEAR_GRAPHQL_ENDPOINT
    assert request.headers["Authorization"] == "lin_api_test"
    body = json.loads(request.content)
    assert "teams(filter: $filter, first: $first)" in body["query"]
    assert "$filter: TeamFilter" in body["query"]
    assert body["variables"] == {"filter": {"key": {"eq": "PLA"}}, "first": 5}


def test_find_one_returns_none_when_empty() -> None:
    """Test that an empty connection yields None."""
    client = make_client(lambda body: httpx.Response(200, json={"data": {"users": {"nodes": []}}}))

    assert client.find_one("user", {"id": {"eq": "u1"}}) is None


def test_find_one_asks_for_one_record() -> None:
    """Test that find_one limits the query to one record."""
    requests: list[httpx.Request] = []
    client = make_client(
        lambda body: httpx.Response(200, json={"data": {"issueLabels": {"nodes": [{"id": "l1", "name": "Bug"}]}}}),
        requests,
    )

    assert client.find_one("issueLabel", {"id": {"eq": "l1"}}) == {"id": "l1", "name": "Bug"}
    assert json.loads(requests[0].content)["variables"]["first"] == 1


def test_graphql_errors_raise() -> None:
    """Test that a GraphQL errors array is raised as LinearAPIError."""
    client = make_client(
        lambda body: httpx.Response(200, json={"errors": [{"message": "Cannot query field 'labels' on type 'Issue'"}]})
    )

    with pytest.raises(LinearAPIError, match="GraphQL errors: Cannot query field 'labels'"):
        client.find_many("issue")


def test_http_errors_raise() -> None:
    """Test that HTTP errors are raised as LinearAPIError."""
    client = make_client(lambda body: httpx.Response(500, text="Internal Server Error"))

    with pytest.raises(LinearAPIError, match="HTTP 500"):
        client.raw_query("query { viewer { id } }")


def test_http_error_with_graphql_body() -> None:
    """Test that GraphQL errors in a 400 response keep their message."""
    client = make_client(lambda body: httpx.Response(400, json={"errors": [{"message": "Authentication required"}]}))

    with pytest.raises(LinearAPIError, match="Authentication required"):
        client.find_many("team")


def test_transport_errors_raise() -> None:
    """Test that connection failures are raised as LinearAPIError."""

    def fail(body: dict[str, Any]) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    client = make_client(fail)

    with pytest.raises(LinearAPIError, match="connection refused"):
        client.find_many("team")


def test_update_runs_mutation() -> None:
    """Test the update mutation and its result."""
    requests: list[httpx.Request] = []
    client = make_client(
        lambda body: httpx.Response(
            200,
            json={"data": {"issueUpdate": {"success": True, "issue": {"id": "i1", "title": "Renamed"}}}},
        ),
        requests,
    )

    result = client.update("issue", "i1", {"title": "Renamed"})

    assert result.success
    assert result.record == {"id": "i1", "title": "Renamed"}
    body = json.loads(requests[0].content)
    assert "issueUpdate(id: $id, input: $input)" in body["query"]
    assert "$input: IssueUpdateInput!" in body["query"]
    assert body["variables"] == {"id": "i1", "input": {"title": "Renamed"}}


def test_update_unsuccessful() -> None:
    """Test that a non-success mutation is reported, not raised."""
    client = make_client(lambda body: httpx.Response(200, json={"data": {"projectUpdate": {"success": False}}}))

    result = client.update("project", "p1", {"progress": 0.5})

    assert not result.success
    assert result.record == {}


def test_update_unsupported_kind() -> None:
    """Test that read-only kinds cannot be updated."""
    client = make_client(lambda body: httpx.Response(200, json={}))

    with pytest.raises(ValueError, match="cannot be updated"):
        client.update("team", "t1", {"name": "x"})


def test_unsupported_kind() -> None:
    """Test that unknown kinds are rejected."""
    client = make_client(lambda body: httpx.Response(200, json={}))

    with pytest.raises(ValueError, match="Unsupported entity kind"):
        client.find_many("cycle")


def test_raw_query_returns_data() -> None:
    """Test that raw queries pass variables and return data."""
    client = make_client(lambda body: httpx.Response(200, json={"data": {"echo": body["variables"]}}))

    assert client.raw_query("query Echo($x: Int) { echo }", {"x": 1}) == {"echo": {"x": 1}}


def test_context_manager_closes_http_client() -> None:
    """Test that leaving the context closes the HTTP client."""
    with make_client(lambda body: httpx.Response(200, json={})) as client:
        pass

    assert client.http.is_closed
