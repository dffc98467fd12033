"""Tool operations: validate arguments, call the resolver, shape the payload."""

from typing import Any

import structlog

from linear_mcp.errors import InvalidInput
from linear_mcp.models import Identifier
from linear_mcp.resolver import EntityResolver, Resolution
from linear_mcp.validation import (
    choice,
    optional_date,
    optional_number,
    optional_str,
    optional_str_list,
    require_str,
    resolve_limit,
)

logger = structlog.get_logger()

TICKET_STATUSES = {"active": "started", "completed": "completed", "canceled": "canceled"}
PROJECT_STATUSES = {
    "planned": "planned",
    "started": "started",
    "paused": "paused",
    "completed": "completed",
    "canceled": "canceled",
}

NO_PROJECTS_MESSAGE = "No projects found matching the criteria."


def _payload(data: dict[str, Any], resolution: Resolution) -> dict[str, Any]:
    """Attach the primary-path error to payloads answered by a fallback."""
    if resolution.degraded:
        data["fallback"] = {"reason": resolution.cause}
    return data


def _require_fields(fields: dict[str, Any]) -> dict[str, Any]:
    fields = {key: value for key, value in fields.items() if value is not None}
    if not fields:
        raise InvalidInput("At least one field to update is required")
    return fields


def get_tickets(resolver: EntityResolver, arguments: dict[str, Any]) -> dict[str, Any]:
    """List tickets, optionally filtered by status."""
    state_type = choice(arguments, "status", TICKET_STATUSES)
    limit = resolve_limit(arguments)

    resolution = resolver.list_issues(state_type=state_type, limit=limit)
    tickets = [issue.to_summary() for issue in resolution.value]
    return _payload({"tickets": tickets, "total": len(tickets)}, resolution)


def get_ticket(resolver: EntityResolver, arguments: dict[str, Any]) -> dict[str, Any]:
    """Get one ticket by ID or key, with assignee, team, state and labels."""
    identifier = Identifier.parse(require_str(arguments, "ticketId", "Ticket ID or key is required"))

    resolution = resolver.resolve_issue(identifier)
    return _payload(resolution.value.to_dict(), resolution)


def update_ticket(resolver: EntityResolver, arguments: dict[str, Any]) -> dict[str, Any]:
    """Update a ticket. ``stateId`` may be a synonym such as ``done``."""
    identifier = Identifier.parse(require_str(arguments, "ticketId", "Ticket ID or key is required"))
    fields = _require_fields(
        {
            "title": optional_str(arguments, "title"),
            "description": optional_str(arguments, "description"),
            "stateId": optional_str(arguments, "stateId"),
            "assigneeId": optional_str(arguments, "assigneeId"),
            "priority": optional_number(arguments, "priority", 0, 4, integer=True),
            "dueDate": optional_date(arguments, "dueDate"),
            "estimate": optional_number(arguments, "estimate"),
        }
    )

    resolution = resolver.update_issue(identifier, fields)
    issue = resolution.value
    ticket = {
        "id": issue.id,
        "title": issue.title,
        "description": issue.description,
        "number": issue.number,
        "key": issue.key,
        "updatedAt": issue.updated_at,
        "state": issue.state.to_dict() if issue.state else None,
        "url": issue.url,
    }
    logger.info("Ticket updated", identifier=identifier.raw, key=issue.key)
    return _payload({"success": True, "message": "Ticket updated successfully", "ticket": ticket}, resolution)


def get_projects(resolver: EntityResolver, arguments: dict[str, Any]) -> dict[str, Any] | str:
    """List projects, optionally filtered by status and a search term."""
    search = optional_str(arguments, "search")
    state_type = choice(arguments, "status", PROJECT_STATUSES)
    limit = resolve_limit(arguments)

    # Search filters client-side over extra candidates and ignores status.
    if search:
        if state_type:
            logger.debug("Ignoring project status while searching", status=state_type, search=search)
        resolution = resolver.list_projects(limit=limit * 2)
    else:
        resolution = resolver.list_projects(state_type=state_type, limit=limit)
    projects = resolution.value

    if search:
        term = search.lower()
        projects = [
            project
            for project in projects
            if term in project.name.lower() or (project.description and term in project.description.lower())
        ][:limit]

    if not projects:
        return NO_PROJECTS_MESSAGE

    summaries = [project.to_summary() for project in projects]
    return _payload({"projects": summaries, "total": len(summaries)}, resolution)


def get_project(resolver: EntityResolver, arguments: dict[str, Any]) -> dict[str, Any]:
    """Get one project by ID, with its teams."""
    project_id = require_str(arguments, "projectId", "Project ID is required")

    resolution = resolver.resolve_project(project_id)
    return _payload(resolution.value.to_dict(), resolution)


def update_project(resolver: EntityResolver, arguments: dict[str, Any]) -> dict[str, Any]:
    """Update a project."""
    project_id = require_str(arguments, "projectId", "Project ID is required")
    fields = _require_fields(
        {
            "name": optional_str(arguments, "name"),
            "description": optional_str(arguments, "description"),
            "stateId": optional_str(arguments, "stateId"),
            "teamIds": optional_str_list(arguments, "teamIds"),
            "startDate": optional_date(arguments, "startDate"),
            "targetDate": optional_date(arguments, "targetDate"),
            "progress": optional_number(arguments, "progress", 0.0, 1.0),
            "icon": optional_str(arguments, "icon"),
            "color": optional_str(arguments, "color"),
        }
    )

    resolution = resolver.update_project(project_id, fields)
    logger.info("Project updated", project_id=project_id)
    return _payload(
        {"success": True, "message": "Project updated successfully", "project": resolution.value.to_dict()},
        resolution,
    )


def get_workflow_states(resolver: EntityResolver, arguments: dict[str, Any]) -> list[dict[str, Any]]:
    """List the workflow states of a team given ``teamId`` or ``teamKey``."""
    team_id = optional_str(arguments, "teamId")
    team_key = optional_str(arguments, "teamKey")
    if not team_id and not team_key:
        raise InvalidInput("Either teamId or teamKey is required")

    states = resolver.list_workflow_states(team_id=team_id, team_key=team_key)
    return [state.to_dict() for state in states]
