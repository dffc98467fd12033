"""MCP tool definitions for the Linear operations."""

from collections.abc import Callable
from typing import Any

from mcp.types import Tool

from linear_mcp import operations
from linear_mcp.resolver import EntityResolver

Handler = Callable[[EntityResolver, dict[str, Any]], Any]

_LIMIT_SCHEMA = {
    "type": "number",
    "description": "Maximum number of results to return (default: 10, at most 50)",
}


def register() -> tuple[list[Tool], dict[str, Handler]]:
    """Return (tool_definitions, handler_map) for the Linear tools."""
    tools = [
        Tool(
            name="get-linear-tickets",
            description="Get tickets from Linear API for the authenticated user",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": {
                        "type": "string",
                        "description": "Optional status to filter tickets (e.g. 'active', 'completed')",
                        "enum": list(operations.TICKET_STATUSES),
                    },
                    "limit": _LIMIT_SCHEMA,
                },
            },
        ),
        Tool(
            name="get-linear-projects",
            description="Get projects from Linear API",
            inputSchema={
                "type": "object",
                "properties": {
                    "search": {
                        "type": "string",
                        "description": (
                            "Optional search term to find projects by name or description; "
                            "status is ignored when searching"
                        ),
                    },
                    "status": {
                        "type": "string",
                        "description": "Optional status to filter projects (e.g. 'planned', 'started', 'completed')",
                        "enum": list(operations.PROJECT_STATUSES),
                    },
                    "limit": _LIMIT_SCHEMA,
                },
            },
        ),
        Tool(
            name="get-linear-ticket",
            description="Get detailed information about a specific Linear ticket",
            inputSchema={
                "type": "object",
                "properties": {
                    "ticketId": {
                        "type": "string",
                        "description": "The ID or key of the ticket (e.g., 'PLA-524' or '29ede43e806c')",
                    },
                },
                "required": ["ticketId"],
            },
        ),
        Tool(
            name="get-linear-project",
            description="Get detailed information about a specific Linear project, including its teams",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectId": {"type": "string", "description": "The ID of the project"},
                },
                "required": ["projectId"],
            },
        ),
        Tool(
            name="update-linear-ticket",
            description="Update information for a specific Linear ticket",
            inputSchema={
                "type": "object",
                "properties": {
                    "ticketId": {"type": "string", "description": "The ID or key of the ticket to update"},
                    "title": {"type": "string", "description": "New title for the ticket"},
                    "description": {"type": "string", "description": "New description for the ticket"},
                    "stateId": {
                        "type": "string",
                        "description": "ID of the state to set for the ticket, or 'done' / 'completed'",
                    },
                    "assigneeId": {"type": "string", "description": "ID of the user to assign the ticket to"},
                    "priority": {"type": "number", "description": "Priority level (0-4)"},
                    "dueDate": {"type": "string", "description": "Due date in ISO format (YYYY-MM-DD)"},
                    "estimate": {"type": "number", "description": "Estimate in points"},
                },
                "required": ["ticketId"],
            },
        ),
        Tool(
            name="update-linear-project",
            description="Update information for a specific Linear project",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectId": {"type": "string", "description": "The ID of the project to update"},
                    "name": {"type": "string", "description": "New name for the project"},
                    "description": {"type": "string", "description": "New description for the project"},
                    "stateId": {"type": "string", "description": "ID of the state to set for the project"},
                    "teamIds": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "IDs of teams associated with the project",
                    },
                    "startDate": {"type": "string", "description": "Start date in ISO format (YYYY-MM-DD)"},
                    "targetDate": {"type": "string", "description": "Target date in ISO format (YYYY-MM-DD)"},
                    "progress": {"type": "number", "description": "Progress percentage (0-1)"},
                    "icon": {"type": "string", "description": "Icon for the project"},
                    "color": {"type": "string", "description": "Color for the project"},
                },
                "required": ["projectId"],
            },
        ),
        Tool(
            name="get-linear-workflow-states",
            description="Get workflow states for a Linear team",
            inputSchema={
                "type": "object",
                "properties": {
                    "teamId": {"type": "string", "description": "ID of the team to get workflow states for"},
                    "teamKey": {
                        "type": "string",
                        "description": "Key of the team to get workflow states for (e.g. 'PLA')",
                    },
                },
            },
        ),
    ]

    handlers: dict[str, Handler] = {
        "get-linear-tickets": operations.get_tickets,
        "get-linear-projects": operations.get_projects,
        "get-linear-ticket": operations.get_ticket,
        "get-linear-project": operations.get_project,
        "update-linear-ticket": operations.update_ticket,
        "update-linear-project": operations.update_project,
        "get-linear-workflow-states": operations.get_workflow_states,
    }
    return tools, handlers
