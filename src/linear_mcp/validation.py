"""Argument validation for tool calls.

Every check raises :class:`~linear_mcp.errors.InvalidInput` and runs before
any tracker client is created.
"""

from datetime import date
from typing import Any

from linear_mcp.errors import InvalidInput

DEFAULT_LIMIT = 10
MAX_LIMIT = 50


def require_str(arguments: dict[str, Any], name: str, message: str | None = None) -> str:
    value = arguments.get(name)
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(message or f"{name} is required")
    return value.strip()


def optional_str(arguments: dict[str, Any], name: str) -> str | None:
    value = arguments.get(name)
    if value is not None and not isinstance(value, str):
        raise InvalidInput(f"{name} must be a string")
    return value


def optional_number(
    arguments: dict[str, Any],
    name: str,
    minimum: float | None = None,
    maximum: float | None = None,
    integer: bool = False,
) -> int | float | None:
    """Return a numeric argument, checking type and an inclusive range."""
    value = arguments.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be a number")
    if integer:
        if isinstance(value, float) and not value.is_integer():
            raise InvalidInput(f"{name} must be an integer")
        value = int(value)
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        if minimum is None:
            bounds = f"at most {maximum:g}"
        elif maximum is None:
            bounds = f"at least {minimum:g}"
        else:
            bounds = f"between {minimum:g} and {maximum:g}"
        raise InvalidInput(f"{name.capitalize()} must be {bounds}")
    return value


def optional_date(arguments: dict[str, Any], name: str) -> str | None:
    """Return an ISO ``YYYY-MM-DD`` date argument."""
    value = optional_str(arguments, name)
    if value is None:
        return None
    try:
        date.fromisoformat(value)
    except ValueError:
        raise InvalidInput(f"{name} must be an ISO date (YYYY-MM-DD)") from None
    return value


def optional_str_list(arguments: dict[str, Any], name: str) -> list[str] | None:
    value = arguments.get(name)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise InvalidInput(f"{name} must be a list of strings")
    return value


def choice(arguments: dict[str, Any], name: str, options: dict[str, str]) -> str | None:
    """Map an enumerated argument onto its tracker value."""
    value = optional_str(arguments, name)
    if value is None:
        return None
    if value not in options:
        raise InvalidInput(f"{name} must be one of: {', '.join(options)}")
    return options[value]


def resolve_limit(arguments: dict[str, Any]) -> int:
    """Return the page size: default 10, capped at 50."""
    value = arguments.get("limit")
    if value is None:
        return DEFAULT_LIMIT
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput("limit must be a number")
    if value <= 0:
        return DEFAULT_LIMIT
    return min(int(value), MAX_LIMIT)
