"""Shared fixtures: an in-memory tracker client."""

from typing import Any

import pytest

from linear_mcp.resolver import EntityResolver
from linear_mcp.tracker import ENTITY_KINDS, TrackerClient, UpdateResult


def _matches(record: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    """Evaluate a Linear-style filter (``eq`` / ``in`` comparators, nested fields)."""
    for field, condition in (filter or {}).items():
        value = record.get(field)
        if "eq" in condition:
            if value != condition["eq"]:
                return False
        elif "in" in condition:
            if value not in condition["in"]:
                return False
        elif not isinstance(value, dict) or not _matches(value, condition):
            return False
    return True


class FakeTracker(TrackerClient):
    """In-memory tracker client recording every call."""

    def __init__(self) -> None:
        self.records: dict[str, list[dict[str, Any]]] = {kind: [] for kind in ENTITY_KINDS}
        self.calls: list[tuple[str, str, Any]] = []
        self.failures: dict[str, Exception] = {}
        self.graph: dict[str, Any] | None = None
        self.update_result: UpdateResult | None = None
        self.closed = False

    def add(self, kind: str, **record: Any) -> dict[str, Any]:
        self.records[kind].append(record)
        return record

    def _check(self, method: str, kind: str) -> None:
        for key in (f"{method}:{kind}", method):
            if key in self.failures:
                raise self.failures[key]

    def find_one(self, kind: str, filter: dict[str, Any]) -> dict[str, Any] | None:
        self.calls.append(("find_one", kind, filter))
        self._check("find_one", kind)
        return next((r for r in self.records[kind] if _matches(r, filter)), None)

    def find_many(
        self,
        kind: str,
        filter: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(("find_many", kind, filter))
        self._check("find_many", kind)
        records = [r for r in self.records[kind] if _matches(r, filter)]
        return records[:limit] if limit else records

    def update(self, kind: str, entity_id: str, fields: dict[str, Any]) -> UpdateResult:
        self.calls.append(("update", kind, {"id": entity_id, **fields}))
        self._check("update", kind)
        if self.update_result is not None:
            return self.update_result
        for record in self.records[kind]:
            if record["id"] == entity_id:
                for name, value in fields.items():
                    relation = name[:-2]
                    if name.endswith("Id") and isinstance(record.get(relation), dict):
                        record[relation] = {"id": value}
                    else:
                        record[name] = value
                return UpdateResult(success=True, record=dict(record))
        return UpdateResult(success=False)

    def raw_query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        self.calls.append(("raw_query", "", variables))
        if "raw_query" in self.failures:
            raise self.failures["raw_query"]
        if self.graph is None:
            raise RuntimeError("Cannot query field 'labels' on type 'Issue'")
        return self.graph

    def close(self) -> None:
        self.closed = True

    def calls_to(self, method: str, kind: str | None = None) -> list[tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] == method and (kind is None or call[1] == kind)]


@pytest.fixture
def tracker() -> FakeTracker:
    """Create a tracker seeded with one team, its states, a user and labels."""
    fake = FakeTracker()
    fake.add("team", id="team-1", name="Platform", key="PLA")
    fake.add("user", id="user-1", name="Ada Lovelace", email="ada@example.com")
    fake.add("workflowState", id="state-todo", name="Todo", type="unstarted", color="#e2e2e2", team={"id": "team-1"})
    fake.add("workflowState", id="state-done", name="Done", type="completed", color="#5e6ad2", team={"id": "team-1"})
    fake.add("issueLabel", id="label-bug", name="Bug", color="#eb5757")
    fake.add("issueLabel", id="label-ui", name="UI", color="#26b5ce")
    fake.add(
        "issue",
        id="29ede43e806c",
        identifier="PLA-524",
        title="Fix login redirect",
        description="Users land on a blank page",
        number=524,
        priority=2,
        estimate=3,
        dueDate="2026-11-01",
        createdAt="2026-10-01T09:00:00.000Z",
        updatedAt="2026-10-02T09:00:00.000Z",
        url="https://linear.app/acme/issue/PLA-524",
        assignee={"id": "user-1"},
        team={"id": "team-1", "key": "PLA"},
        state={"id": "state-todo"},
        labelIds=["label-bug", "label-ui"],
    )
    return fake


@pytest.fixture
def resolver(tracker: FakeTracker) -> EntityResolver:
    """Create a resolver over the fake tracker."""
    return EntityResolver(tracker, max_workers=4)
