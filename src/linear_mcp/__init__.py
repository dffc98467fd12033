"""Linear MCP server: Linear tickets, projects and workflow states as MCP tools."""

__version__ = "0.1.0"
