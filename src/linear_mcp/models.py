"""Data models for Linear entities."""

from dataclasses import dataclass, field
from typing import Any

from linear_mcp.errors import InvalidInput

UNKNOWN = "Unknown"
UNKNOWN_LABEL_COLOR = "#cccccc"


@dataclass(frozen=True)
class Identifier:
    """A caller-supplied issue identifier.

    Either an opaque ID (``29ede43e806c`` or a UUID) or a composite key of
    the form ``<TeamKey>-<Number>`` (``PLA-524``). The string is split once
    on the first hyphen; team keys containing hyphens are not supported.
    """

    raw: str
    team_key: str | None = None
    number: int | None = None

    @classmethod
    def parse(cls, raw: Any) -> "Identifier":
        """Parse an identifier string."""
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidInput("Ticket ID or key is required")

        raw = raw.strip()
        if "-" in raw:
            prefix, suffix = raw.split("-", 1)
            if prefix and suffix.isdecimal():
                return cls(raw=raw, team_key=prefix, number=int(suffix))
        return cls(raw=raw)

    @property
    def is_key(self) -> bool:
        return self.team_key is not None

    def to_filter(self) -> dict[str, Any]:
        """Build the tracker filter that selects this identifier."""
        if self.is_key:
            return {"team": {"key": {"eq": self.team_key}}, "number": {"eq": self.number}}
        return {"id": {"eq": self.raw}}


@dataclass
class User:
    """Represents a Linear user."""

    id: str
    name: str = UNKNOWN
    email: str = ""

    @classmethod
    def unknown(cls, user_id: str) -> "User":
        return cls(id=user_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass
class Team:
    """Represents a Linear team. A team without a key is unresolved."""

    id: str
    name: str = UNKNOWN
    key: str | None = None

    @classmethod
    def unknown(cls, team_id: str) -> "Team":
        return cls(id=team_id)

    @property
    def resolved(self) -> bool:
        return bool(self.key)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "key": self.key}


@dataclass
class WorkflowState:
    """Represents a per-team workflow state."""

    id: str
    name: str = UNKNOWN
    type: str = UNKNOWN
    color: str | None = None

    @classmethod
    def unknown(cls, state_id: str) -> "WorkflowState":
        return cls(id=state_id)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name, "type": self.type}
        if self.color is not None:
            data["color"] = self.color
        return data


@dataclass
class Label:
    """Represents an issue label."""

    id: str
    name: str = UNKNOWN
    color: str = UNKNOWN_LABEL_COLOR

    @classmethod
    def unknown(cls, label_id: str) -> "Label":
        return cls(id=label_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}


def derive_key(team: Team | None, number: int, prefix: str = "ISSUE") -> str:
    """Derive the display key of a numbered entity.

    Reproduces Linear's native ``identifier`` when the team is resolved.
    """
    if team is not None and team.resolved:
        return f"{team.key}-{number}"
    return f"{prefix}-{number}"


@dataclass
class Issue:
    """Represents a Linear issue with its related entities."""

    id: str
    title: str
    number: int
    description: str | None = None
    due_date: str | None = None
    estimate: float | None = None
    priority: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    url: str | None = None
    identifier: str | None = None
    assignee: User | None = None
    team: Team | None = None
    state: WorkflowState | None = None
    labels: list[Label] = field(default_factory=list)

    @property
    def key(self) -> str:
        return derive_key(self.team, self.number)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "number": self.number,
            "key": self.key,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "dueDate": self.due_date,
            "estimate": self.estimate,
            "priority": self.priority,
            "assignee": self.assignee.to_dict() if self.assignee else None,
            "team": self.team.to_dict() if self.team else None,
            "state": self.state.to_dict() if self.state else None,
            "labels": [label.to_dict() for label in self.labels],
            "url": self.url,
        }

    def to_summary(self) -> dict[str, Any]:
        """Return the short form used in issue listings."""
        return {
            "id": self.id,
            "title": self.title,
            "status": self.state.name if self.state else UNKNOWN,
            "priority": self.priority,
            "number": self.number,
            "key": self.key,
            "url": self.url,
        }


@dataclass
class Project:
    """Represents a Linear project."""

    id: str
    name: str
    description: str | None = None
    state: str | None = None
    teams: list[Team] = field(default_factory=list)
    start_date: str | None = None
    target_date: str | None = None
    progress: float | None = None
    updated_at: str | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "state": self.state,
            "teams": [team.to_dict() for team in self.teams],
            "startDate": self.start_date,
            "targetDate": self.target_date,
            "progress": self.progress,
            "updatedAt": self.updated_at,
            "url": self.url,
        }

    def to_summary(self) -> dict[str, Any]:
        """Return the short form used in project listings."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.state or UNKNOWN,
            "startDate": self.start_date,
            "targetDate": self.target_date,
            "progress": self.progress,
            "url": self.url,
        }
