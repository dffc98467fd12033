"""Tracker client interface used by the entity resolver."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

ENTITY_KINDS = ("issue", "project", "team", "user", "workflowState", "issueLabel")


@dataclass
class UpdateResult:
    """Outcome of an update call."""

    success: bool
    record: dict[str, Any] = field(default_factory=dict)


class TrackerClient(ABC):
    """Abstract base class for issue-tracker clients.

    Records are plain dicts in the tracker's wire shape. Related entities
    may come back fully expanded or as bare ``{"id": ...}`` references.
    """

    @abstractmethod
    def find_one(self, kind: str, filter: dict[str, Any]) -> dict[str, Any] | None:
        """Return the first record of ``kind`` matching ``filter``, or None."""
        pass

    @abstractmethod
    def find_many(
        self,
        kind: str,
        filter: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return records of ``kind`` matching ``filter``, in tracker order."""
        pass

    @abstractmethod
    def update(self, kind: str, entity_id: str, fields: dict[str, Any]) -> UpdateResult:
        """Apply a partial update to one record."""
        pass

    @abstractmethod
    def raw_query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run an arbitrary query and return its data payload."""
        pass

    def close(self) -> None:
        """Release any resources held by the client."""

    def __enter__(self) -> "TrackerClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
