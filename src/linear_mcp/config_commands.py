"""Configuration commands for linear-mcp CLI."""

import yaml
from cyclopts import App

from linear_mcp.config import get_config

config_app = App(name="config", help="Manage configuration")

SECRET_KEYS = {"linear.api_key"}
MAPPING_KEYS = {"resolver.state_synonyms"}


def _display(key: str, value: object) -> str:
    if key in SECRET_KEYS and value:
        text = str(value)
        return f"{text[:4]}****" if len(text) > 4 else "****"
    return str(value)


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a configuration setting.

    Values of mapping keys are parsed as YAML, so
    ``{done: completed, shipped: completed}`` is stored as a mapping.
    Every other value is stored as the given string.

    Args:
        key: Configuration key
        value: Configuration value
        global_: If True, set in global config. If False, set in local config.
    """
    parsed: object = value
    if key in MAPPING_KEYS:
        try:
            parsed = yaml.safe_load(value)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid mapping for {key}: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError(f"{key} must be a mapping, e.g. '{{done: completed}}'")

    config = get_config(use_global=global_)
    config.set(key, parsed)
    scope = "global" if global_ else "local"
    print(f"Set {key} = {_display(key, parsed)} ({scope})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Unset a configuration setting.

    Args:
        key: Configuration key
        global_: If True, unset from global config. If False, unset from local config.
    """
    config = get_config(use_global=global_)
    config.unset(key)
    scope = "global" if global_ else "local"
    print(f"Unset {key} ({scope})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Get the value of a configuration setting.

    Args:
        key: Configuration key
        global_: If True, get from global config only. If False, get with global fallback.
    """
    config = get_config(use_global=global_)
    value = config.get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {_display(key, value)}")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """List all configuration settings.

    Args:
        global_: If True, list global config only. If False, list merged config.
    """
    config = get_config(use_global=global_)
    settings = config.list()

    if not settings:
        scope = "global" if global_ else "local"
        print(f"No {scope} configuration settings")
        return

    scope = "Global" if global_ else "Configuration"
    print(f"{scope} settings:\n")
    for key, value in settings.items():
        print(f"{key} = {_display(key, value)}")
