"""Linear GraphQL backend implementation using httpx."""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from linear_mcp.tracker import TrackerClient, UpdateResult

logger = structlog.get_logger()

LINEAR_GRAPHQL_ENDPOINT = "https://api.linear.app/graphql"

ISSUE_FIELDS = """
    id identifier title description number priority estimate dueDate
    createdAt updatedAt url
    assignee { id }
    team { id }
    state { id }
    labelIds
"""

PROJECT_FIELDS = """
    id name description state startDate targetDate progress updatedAt url
    teams { nodes { id } }
"""


@dataclass(frozen=True)
class _EntityKind:
    connection: str
    filter_type: str
    fields: str
    mutation: str | None = None
    input_type: str | None = None


_KINDS: dict[str, _EntityKind] = {
    "issue": _EntityKind("issues", "IssueFilter", ISSUE_FIELDS, "issueUpdate", "IssueUpdateInput"),
    "project": _EntityKind("projects", "ProjectFilter", PROJECT_FIELDS, "projectUpdate", "ProjectUpdateInput"),
    "team": _EntityKind("teams", "TeamFilter", "id name key"),
    "user": _EntityKind("users", "UserFilter", "id name email"),
    "workflowState": _EntityKind("workflowStates", "WorkflowStateFilter", "id name type color team { id }"),
    "issueLabel": _EntityKind("issueLabels", "IssueLabelFilter", "id name color"),
}


class LinearAPIError(Exception):
    """Raised when the Linear API answers with an HTTP or GraphQL error."""


class LinearClient(TrackerClient):
    """Tracker client backed by Linear's GraphQL API."""

    def __init__(
        self,
        api_key: str | None,
        endpoint: str = LINEAR_GRAPHQL_ENDPOINT,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the Linear client.

        Args:
            api_key: Linear personal API key
            endpoint: GraphQL endpoint URL
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        if not api_key:
            raise ValueError("Linear API key required")

        self.endpoint = endpoint
        logger.debug("Initializing Linear client", endpoint=endpoint, timeout=timeout)
        self.http = httpx.Client(
            headers={"Authorization": api_key, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    def _kind(self, kind: str) -> _EntityKind:
        try:
            return _KINDS[kind]
        except KeyError:
            raise ValueError(f"Unsupported entity kind: '{kind}'") from None

    def _execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Post a GraphQL document and return its ``data`` payload."""
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            response = self.http.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            logger.error("Linear request failed", error=str(e))
            raise LinearAPIError(f"Request to Linear failed: {e}") from e

        try:
            result = response.json()
        except ValueError:
            result = {}

        errors = result.get("errors") if isinstance(result, dict) else None
        if errors:
            messages = [error.get("message", str(error)) for error in errors]
            logger.error("Linear returned GraphQL errors", errors=messages)
            raise LinearAPIError(f"GraphQL errors: {'; '.join(messages)}")

        if response.is_error:
            logger.error("Linear returned HTTP error", status_code=response.status_code)
            raise LinearAPIError(f"HTTP {response.status_code}: {response.text[:200]}")

        return result.get("data") or {}

    def find_one(self, kind: str, filter: dict[str, Any]) -> dict[str, Any] | None:
        """Return the first matching record."""
        records = self.find_many(kind, filter, limit=1)
        return records[0] if records else None

    def find_many(
        self,
        kind: str,
        filter: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Run a structured connection query for ``kind``."""
        entity = self._kind(kind)
        name = entity.connection[0].upper() + entity.connection[1:]
        query = (
            f"query Find{name}($filter: {entity.filter_type}, $first: Int) {{\n"
            f"  {entity.connection}(filter: $filter, first: $first) {{ nodes {{ {entity.fields} }} }}\n"
            "}"
        )
        logger.debug("Querying Linear", kind=kind, filter=filter, limit=limit)
        data = self._execute(query, {"filter": filter, "first": limit})
        nodes = (data.get(entity.connection) or {}).get("nodes") or []
        logger.debug("Linear query returned", kind=kind, count=len(nodes))
        return nodes

    def update(self, kind: str, entity_id: str, fields: dict[str, Any]) -> UpdateResult:
        """Run the update mutation for ``kind``."""
        entity = self._kind(kind)
        if entity.mutation is None:
            raise ValueError(f"Entity kind '{kind}' cannot be updated")

        query = (
            f"mutation Update($id: String!, $input: {entity.input_type}!) {{\n"
            f"  {entity.mutation}(id: $id, input: $input) {{ success {kind} {{ {entity.fields} }} }}\n"
            "}"
        )
        logger.info("Updating Linear record", kind=kind, entity_id=entity_id, fields=sorted(fields))
        data = self._execute(query, {"id": entity_id, "input": fields})
        payload = data.get(entity.mutation) or {}
        return UpdateResult(success=bool(payload.get("success")), record=payload.get(kind) or {})

    def raw_query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run an arbitrary GraphQL document."""
        logger.debug("Running raw Linear query", variables=variables)
        return self._execute(query, variables)
