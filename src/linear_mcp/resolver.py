"""Entity resolution and normalization over a tracker client.

Every tool goes through :class:`EntityResolver`. It turns identifiers into
records, fills in related entities the tracker did not expand, and
produces the same model objects no matter which query path answered.

Fetches prefer one raw query that asks for the whole relation graph. When
that query fails, the resolver falls back to the minimal structured query
and looks related entities up one by one. The primary error is kept on the
returned :class:`Resolution` so a degraded answer is never silent.
"""

from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from linear_mcp.config import DEFAULT_STATE_SYNONYMS, Settings
from linear_mcp.errors import AmbiguousState, InvalidInput, NotFound, UpstreamFailure
from linear_mcp.models import UNKNOWN, UNKNOWN_LABEL_COLOR, Identifier, Issue, Label, Project, Team, User, WorkflowState
from linear_mcp.tracker import TrackerClient

logger = structlog.get_logger()

T = TypeVar("T")
R = TypeVar("R")

ISSUE_RELATIONS = ("assignee", "team", "state", "labels")
WORKFLOW_STATE_LIMIT = 100

ISSUE_GRAPH_QUERY = """
query ResolveIssues($filter: IssueFilter, $first: Int) {
  issues(filter: $filter, first: $first) {
    nodes {
      id identifier title description number priority estimate dueDate
      createdAt updatedAt url
      assignee { id name email }
      team { id name key }
      state { id name type color }
      labels { nodes { id name color } }
    }
  }
}
"""

PROJECT_GRAPH_QUERY = """
query ResolveProjects($filter: ProjectFilter, $first: Int) {
  projects(filter: $filter, first: $first) {
    nodes {
      id name description state startDate targetDate progress updatedAt url
      teams { nodes { id name key } }
    }
  }
}
"""


@dataclass
class Resolution:
    """A resolved value plus the primary-path error when a fallback answered."""

    value: Any
    cause: str | None = None

    @property
    def degraded(self) -> bool:
        return self.cause is not None


def _user_from(record: dict[str, Any]) -> User:
    return User(id=record["id"], name=record.get("name") or UNKNOWN, email=record.get("email") or "")


def _team_from(record: dict[str, Any]) -> Team:
    return Team(id=record["id"], name=record.get("name") or UNKNOWN, key=record.get("key") or None)


def _state_from(record: dict[str, Any]) -> WorkflowState:
    return WorkflowState(
        id=record["id"],
        name=record.get("name") or UNKNOWN,
        type=record.get("type") or UNKNOWN,
        color=record.get("color"),
    )


def _label_from(record: dict[str, Any]) -> Label:
    return Label(id=record["id"], name=record.get("name") or UNKNOWN, color=record.get("color") or UNKNOWN_LABEL_COLOR)


def _team_label(team: Team) -> str:
    if team.key:
        return team.key
    return team.name if team.name != UNKNOWN else team.id


def _optional_int(value: Any) -> int | None:
    return int(value) if value is not None else None


def _optional_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _nodes(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, dict):
        return value.get("nodes") or []
    return []


class EntityResolver:
    """Resolves, backfills and updates Linear entities through a tracker client."""

    def __init__(
        self,
        client: TrackerClient,
        max_workers: int = 8,
        label_catalog_limit: int = 250,
        state_synonyms: dict[str, str] | None = None,
    ) -> None:
        self.client = client
        self.max_workers = max(1, max_workers)
        self.label_catalog_limit = label_catalog_limit
        self.state_synonyms = {
            k.lower(): v for k, v in (state_synonyms if state_synonyms is not None else DEFAULT_STATE_SYNONYMS).items()
        }

    @classmethod
    def from_settings(cls, client: TrackerClient, settings: Settings) -> "EntityResolver":
        return cls(
            client,
            max_workers=settings.max_workers,
            label_catalog_limit=settings.label_catalog_limit,
            state_synonyms=settings.state_synonyms,
        )

    # -- batching ---------------------------------------------------------

    def _batch(self, func: Callable[[T], R], items: Iterable[T]) -> list[R]:
        """Apply ``func`` to every item concurrently; results keep input order."""
        items = list(items)
        if len(items) <= 1:
            return [func(item) for item in items]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as executor:
            return list(executor.map(func, items))

    # -- fetching ---------------------------------------------------------

    def _fetch_records(
        self,
        what: str,
        graph_query: str,
        connection: str,
        kind: str,
        filter: dict[str, Any] | None,
        limit: int | None,
    ) -> tuple[list[dict[str, Any]], str | None]:
        """Fetch records via the full-graph query, falling back to the structured query.

        Returns the records and, when the fallback answered, the primary error.
        """
        try:
            data = self.client.raw_query(graph_query, {"filter": filter, "first": limit})
            return _nodes(data.get(connection)), None
        except Exception as e:
            cause = f"{type(e).__name__}: {e}"
            logger.warning("Full-graph query failed, falling back to structured query", target=what, error=cause)

        try:
            return self.client.find_many(kind, filter, limit), cause
        except Exception as e:
            logger.error("Structured query failed", target=what, error=str(e))
            raise UpstreamFailure(f"Could not fetch {what}: {e}") from e

    def _single(self, records: Sequence[dict[str, Any]], identifier: str, noun: str) -> dict[str, Any]:
        if not records:
            raise NotFound(f"{noun} not found: {identifier}")
        if len(records) > 1:
            logger.error("Identifier matched several records", identifier=identifier, count=len(records))
            raise UpstreamFailure(f"{noun} identifier {identifier} matched {len(records)} records")
        return records[0]

    def resolve_issue(self, identifier: str | Identifier, relations: Sequence[str] = ISSUE_RELATIONS) -> Resolution:
        """Resolve an issue by opaque ID or ``TEAM-123`` key."""
        ident = identifier if isinstance(identifier, Identifier) else Identifier.parse(identifier)
        logger.info("Resolving ticket", identifier=ident.raw, by_key=ident.is_key)

        records, cause = self._fetch_records(
            f"ticket {ident.raw}", ISSUE_GRAPH_QUERY, "issues", "issue", ident.to_filter(), limit=2
        )
        record = self._single(records, ident.raw, "Ticket")
        issue = self.backfill_issue(record, relations)
        logger.debug("Ticket resolved", identifier=ident.raw, key=issue.key, degraded=cause is not None)
        return Resolution(issue, cause)

    def resolve_project(self, project_id: str) -> Resolution:
        """Resolve a project by ID, with its teams."""
        if not isinstance(project_id, str) or not project_id.strip():
            raise InvalidInput("Project ID is required")
        project_id = project_id.strip()
        logger.info("Resolving project", project_id=project_id)

        records, cause = self._fetch_records(
            f"project {project_id}", PROJECT_GRAPH_QUERY, "projects", "project", {"id": {"eq": project_id}}, limit=2
        )
        record = self._single(records, project_id, "Project")
        return Resolution(self.backfill_project(record), cause)

    def list_issues(self, state_type: str | None = None, limit: int = 10) -> Resolution:
        """List issues, optionally restricted to one coarse state type."""
        filter = {"state": {"type": {"eq": state_type}}} if state_type else None
        logger.info("Listing tickets", state_type=state_type, limit=limit)
        records, cause = self._fetch_records("tickets", ISSUE_GRAPH_QUERY, "issues", "issue", filter, limit)
        issues = self._batch(lambda record: self.backfill_issue(record, ("team", "state")), records)
        return Resolution(issues, cause)

    def list_projects(self, state_type: str | None = None, limit: int = 10) -> Resolution:
        """List projects, optionally restricted to one status type."""
        filter = {"status": {"type": {"eq": state_type}}} if state_type else None
        logger.info("Listing projects", state_type=state_type, limit=limit)
        records, cause = self._fetch_records("projects", PROJECT_GRAPH_QUERY, "projects", "project", filter, limit)
        projects = [self.backfill_project(record, include_teams=False) for record in records]
        return Resolution(projects, cause)

    # -- backfill ---------------------------------------------------------

    def _lookup(
        self,
        kind: str,
        entity_id: str,
        build: Callable[[dict[str, Any]], T],
        placeholder: Callable[[str], T],
    ) -> T:
        """Look up one related entity by ID. Failures degrade to ``placeholder``."""
        try:
            record = self.client.find_one(kind, {"id": {"eq": entity_id}})
        except Exception as e:
            logger.warning("Failed to fetch related entity", kind=kind, entity_id=entity_id, error=str(e))
            return placeholder(entity_id)

        if record is None:
            logger.warning("Related entity not found", kind=kind, entity_id=entity_id)
            return placeholder(entity_id)
        return build(record)

    def _lookup_many(
        self,
        kind: str,
        entity_ids: Sequence[str],
        build: Callable[[dict[str, Any]], T],
        placeholder: Callable[[str], T],
    ) -> list[T]:
        return self._batch(lambda entity_id: self._lookup(kind, entity_id, build, placeholder), entity_ids)

    def _related(
        self,
        record: dict[str, Any],
        relation: str,
        kind: str,
        build: Callable[[dict[str, Any]], T],
        placeholder: Callable[[str], T],
        expanded_fields: Sequence[str],
    ) -> T | None:
        """Return a related entity, expanding a bare ID reference if needed."""
        value = record.get(relation)
        if isinstance(value, dict):
            if all(name in value for name in expanded_fields):
                return build(value)
            ref = value.get("id")
        else:
            ref = record.get(f"{relation}Id")

        if not ref:
            return None
        return self._lookup(kind, ref, build, placeholder)

    def backfill_labels(self, label_ids: Sequence[str]) -> list[Label]:
        """Resolve label IDs, using the label catalog when there are several."""
        if not label_ids:
            return []
        if len(label_ids) == 1:
            return [self._lookup("issueLabel", label_ids[0], _label_from, Label.unknown)]

        try:
            catalog = self.client.find_many("issueLabel", limit=self.label_catalog_limit)
        except Exception as e:
            logger.warning("Failed to fetch label catalog, looking labels up one by one", error=str(e))
            return self._lookup_many("issueLabel", label_ids, _label_from, Label.unknown)

        by_id = {record["id"]: _label_from(record) for record in catalog if record.get("id")}
        missing = [label_id for label_id in label_ids if label_id not in by_id]
        if missing:
            logger.debug("Labels missing from catalog", label_ids=missing)
            by_id.update(zip(missing, self._lookup_many("issueLabel", missing, _label_from, Label.unknown)))
        return [by_id[label_id] for label_id in label_ids]

    def backfill_issue(self, record: dict[str, Any], relations: Sequence[str] = ISSUE_RELATIONS) -> Issue:
        """Build an :class:`Issue` from a record, filling in the requested relations.

        Never raises for a related entity: lookups that fail become placeholders.
        """
        issue = Issue(
            id=record["id"],
            title=record["title"],
            number=int(record["number"]),
            description=record.get("description"),
            due_date=record.get("dueDate"),
            estimate=_optional_float(record.get("estimate")),
            priority=_optional_int(record.get("priority")),
            created_at=record.get("createdAt"),
            updated_at=record.get("updatedAt"),
            url=record.get("url"),
            identifier=record.get("identifier"),
        )

        if "assignee" in relations:
            issue.assignee = self._related(record, "assignee", "user", _user_from, User.unknown, ("name",))
        if "team" in relations:
            issue.team = self._related(record, "team", "team", _team_from, Team.unknown, ("name", "key"))
        if "state" in relations:
            issue.state = self._related(
                record, "state", "workflowState", _state_from, WorkflowState.unknown, ("name", "type")
            )
        if "labels" in relations:
            nodes = _nodes(record.get("labels"))
            if nodes and all("name" in node for node in nodes):
                issue.labels = [_label_from(node) for node in nodes]
            else:
                label_ids = [node["id"] for node in nodes] or list(record.get("labelIds") or [])
                issue.labels = self.backfill_labels(label_ids)
        return issue

    def backfill_project(self, record: dict[str, Any], include_teams: bool = True) -> Project:
        """Build a :class:`Project` from a record, resolving team references concurrently."""
        project = Project(
            id=record["id"],
            name=record["name"],
            description=record.get("description"),
            state=record.get("state"),
            start_date=record.get("startDate"),
            target_date=record.get("targetDate"),
            progress=_optional_float(record.get("progress")),
            updated_at=record.get("updatedAt"),
            url=record.get("url"),
        )

        if include_teams:
            nodes = _nodes(record.get("teams"))
            if nodes and all("key" in node for node in nodes):
                project.teams = [_team_from(node) for node in nodes]
            else:
                team_ids = [node["id"] for node in nodes] or list(record.get("teamIds") or [])
                project.teams = self._lookup_many("team", team_ids, _team_from, Team.unknown)
        return project

    # -- workflow states --------------------------------------------------

    def is_state_synonym(self, value: str) -> bool:
        return value.lower() in self.state_synonyms

    def _issue_team(self, issue: Issue, identifier: Identifier | None) -> Team | None:
        if issue.team is not None:
            return issue.team
        if identifier is None or not identifier.is_key:
            return None

        try:
            record = self.client.find_one("team", {"key": {"eq": identifier.team_key}})
        except Exception as e:
            logger.warning("Failed to find team by key", team_key=identifier.team_key, error=str(e))
            return None
        return _team_from(record) if record else None

    def resolve_state_synonym(
        self, issue: Issue, requested: str, identifier: Identifier | None = None
    ) -> WorkflowState:
        """Map a synonym such as ``done`` onto a workflow state of the issue's team."""
        state_type = self.state_synonyms.get(requested.lower())
        if state_type is None:
            raise InvalidInput(f"Unknown state name: {requested}")

        team = self._issue_team(issue, identifier)
        if team is None:
            ticket = identifier.raw if identifier else issue.id
            raise AmbiguousState(f"Ticket {ticket} does not have a team, cannot determine workflow states")
        team_name = _team_label(team)

        states = self._team_states(team.id, team_name)
        names = {synonym for synonym, target in self.state_synonyms.items() if target == state_type}
        for state in states:
            if state.name.lower() in names or state.type == state_type:
                logger.info("Resolved state synonym", requested=requested, state_id=state.id, team=team_name)
                return state

        raise AmbiguousState(f"Could not find a '{requested}' state for team {team_name}")

    def _team_states(self, team_id: str, team_name: str) -> list[WorkflowState]:
        try:
            records = self.client.find_many(
                "workflowState", {"team": {"id": {"eq": team_id}}}, limit=WORKFLOW_STATE_LIMIT
            )
        except Exception as e:
            raise UpstreamFailure(f"Failed to get workflow states for team {team_name}: {e}") from e
        return [_state_from(record) for record in records]

    def list_workflow_states(self, team_id: str | None = None, team_key: str | None = None) -> list[WorkflowState]:
        """List the workflow states of a team given its ID or key."""
        if not team_id and not team_key:
            raise InvalidInput("Either teamId or teamKey is required")

        if not team_id:
            try:
                team = self.client.find_one("team", {"key": {"eq": team_key}})
            except Exception as e:
                raise UpstreamFailure(f"Failed to find team with key {team_key}: {e}") from e
            if team is None:
                raise NotFound(f"Team not found with key: {team_key}")
            team_id = team["id"]

        logger.info("Listing workflow states", team_id=team_id, team_key=team_key)
        return self._team_states(team_id, team_key or team_id)

    # -- updates ----------------------------------------------------------

    def _apply_update(self, kind: str, entity_id: str, fields: dict[str, Any], what: str) -> dict[str, Any]:
        try:
            result = self.client.update(kind, entity_id, fields)
        except Exception as e:
            logger.error("Update failed", kind=kind, target=what, error=str(e))
            raise UpstreamFailure(f"Failed to update {what}: {e}") from e

        if not result.success or not result.record:
            raise UpstreamFailure(f"Failed to update {what}")
        return result.record

    def update_issue(self, identifier: str | Identifier, fields: dict[str, Any]) -> Resolution:
        """Update an issue, mapping state synonyms to real state IDs first."""
        ident = identifier if isinstance(identifier, Identifier) else Identifier.parse(identifier)
        resolution = self.resolve_issue(ident, relations=("team",))
        issue = resolution.value

        fields = dict(fields)
        requested_state = fields.get("stateId")
        if isinstance(requested_state, str) and self.is_state_synonym(requested_state):
            fields["stateId"] = self.resolve_state_synonym(issue, requested_state, ident).id

        logger.info("Updating ticket", identifier=ident.raw, fields=sorted(fields))
        record = self._apply_update("issue", issue.id, fields, f"ticket {ident.raw}")
        return Resolution(self.backfill_issue(record, ("team", "state")), resolution.cause)

    def update_project(self, project_id: str, fields: dict[str, Any]) -> Resolution:
        """Update a project and return it with its teams."""
        try:
            record = self.client.find_one("project", {"id": {"eq": project_id}})
        except Exception as e:
            raise UpstreamFailure(f"Could not fetch project {project_id}: {e}") from e
        if record is None:
            raise NotFound(f"Project not found: {project_id}")

        logger.info("Updating project", project_id=project_id, fields=sorted(fields))
        updated = self._apply_update("project", record["id"], fields, f"project {project_id}")
        return Resolution(self.backfill_project(updated))

