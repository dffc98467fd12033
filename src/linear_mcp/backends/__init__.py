"""Tracker client implementations."""

from linear_mcp.backends.linear import LinearAPIError, LinearClient

__all__ = ["LinearClient", "LinearAPIError"]
