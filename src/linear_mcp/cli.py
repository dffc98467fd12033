"""CLI for linear-mcp."""

import json
import sys
from typing import Annotated, Any, Literal

import structlog
from cyclopts import App, Parameter

from linear_mcp import operations
from linear_mcp.backends import LinearClient
from linear_mcp.config import load_settings
from linear_mcp.config_commands import config_app
from linear_mcp.errors import TrackerError
from linear_mcp.resolver import EntityResolver
from linear_mcp.tools import Handler

logger = structlog.get_logger()

app = App(
    name="linear-mcp",
    help="Linear MCP server - Linear tickets, projects and workflow states for agents",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level, writing to stderr."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def run_operation(handler: Handler, arguments: dict[str, Any]) -> None:
    """Run one operation against Linear and print its payload."""
    settings = load_settings()
    arguments = {key: value for key, value in arguments.items() if value is not None}

    try:
        with LinearClient(settings.api_key, endpoint=settings.endpoint, timeout=settings.timeout) as client:
            result = handler(EntityResolver.from_settings(client, settings), arguments)
    except TrackerError as e:
        print(f"Error ({e.code}): {e}", file=sys.stderr)
        sys.exit(1)

    print(result if isinstance(result, str) else json.dumps(result, indent=2, default=str))


@app.command
def serve() -> None:
    """Run the MCP server on stdio."""
    from linear_mcp.server import serve as serve_stdio

    settings = load_settings()
    serve_stdio(settings)


@app.command
def tickets(status: Literal["active", "completed", "canceled"] | None = None, limit: int | None = None) -> None:
    """List tickets."""
    run_operation(operations.get_tickets, {"status": status, "limit": limit})


@app.command
def ticket(ticket_id: str) -> None:
    """Show a ticket by ID or key (e.g. PLA-524)."""
    run_operation(operations.get_ticket, {"ticketId": ticket_id})


@app.command
def update_ticket(
    ticket_id: str,
    title: str | None = None,
    description: str | None = None,
    state_id: str | None = None,
    assignee_id: str | None = None,
    priority: int | None = None,
    due_date: str | None = None,
    estimate: float | None = None,
) -> None:
    """Update a ticket. STATE_ID may be 'done' or 'completed'."""
    run_operation(
        operations.update_ticket,
        {
            "ticketId": ticket_id,
            "title": title,
            "description": description,
            "stateId": state_id,
            "assigneeId": assignee_id,
            "priority": priority,
            "dueDate": due_date,
            "estimate": estimate,
        },
    )


@app.command
def projects(
    search: str | None = None,
    status: Literal["planned", "started", "paused", "completed", "canceled"] | None = None,
    limit: int | None = None,
) -> None:
    """List projects."""
    run_operation(operations.get_projects, {"search": search, "status": status, "limit": limit})


@app.command
def project(project_id: str) -> None:
    """Show a project by ID."""
    run_operation(operations.get_project, {"projectId": project_id})


@app.command
def update_project(
    project_id: str,
    name: str | None = None,
    description: str | None = None,
    state_id: str | None = None,
    team_ids: list[str] | None = None,
    start_date: str | None = None,
    target_date: str | None = None,
    progress: float | None = None,
    icon: str | None = None,
    color: str | None = None,
) -> None:
    """Update a project."""
    run_operation(
        operations.update_project,
        {
            "projectId": project_id,
            "name": name,
            "description": description,
            "stateId": state_id,
            "teamIds": team_ids,
            "startDate": start_date,
            "targetDate": target_date,
            "progress": progress,
            "icon": icon,
            "color": color,
        },
    )


@app.command
def states(team_id: str | None = None, team_key: str | None = None) -> None:
    """List the workflow states of a team."""
    run_operation(operations.get_workflow_states, {"teamId": team_id, "teamKey": team_key})


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "warning",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
