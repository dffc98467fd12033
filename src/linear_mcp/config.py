"""Configuration management for linear-mcp using YAML files."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from linear_mcp.backends.linear import LINEAR_GRAPHQL_ENDPOINT

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".linear-mcp"
API_KEY_ENV = "LINEAR_API_KEY"

# Synonym (lowercase) -> coarse workflow state type it stands for.
DEFAULT_STATE_SYNONYMS = {"done": "completed", "completed": "completed"}


class Config:
    """Configuration manager using YAML file storage.

    Supports both local (repository-level) and global (user-level) configuration.
    Local config is stored in .linear-mcp/config.yaml in the current directory.
    Global config is stored in ~/.linear-mcp/config.yaml.

    When reading, values are looked up in local config first, then global config.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            use_global: If True, use global config only. If False, use local config with global fallback.
            config_dir: Custom directory to store config file (overrides use_global)
        """
        if config_dir is not None:
            self.config_dir = Path(config_dir)
            self.is_global = use_global
        elif use_global:
            self.config_dir = Path.home() / CONFIG_DIR_NAME
            self.is_global = True
        else:
            self.config_dir = Path.cwd() / CONFIG_DIR_NAME
            self.is_global = False

        self.config_file = self.config_dir / "config.yaml"
        self._config: dict[str, Any] = self._load()

        # For local config, also load global config as fallback
        self._global_config: dict[str, Any] = {}
        if not self.is_global:
            global_config_file = Path.home() / CONFIG_DIR_NAME / "config.yaml"
            if global_config_file.exists() and global_config_file != self.config_file:
                try:
                    with open(global_config_file, "r") as f:
                        self._global_config = yaml.safe_load(f) or {}
                except (OSError, yaml.YAMLError) as e:
                    logger.warning("Failed to load global config", error=str(e))

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    def _load(self) -> dict[str, Any]:
        """Load configuration from YAML file.

        Returns:
            Configuration dictionary
        """
        if not self.config_file.exists():
            logger.debug("Config file does not exist, initializing empty config")
            return {}

        try:
            with open(self.config_file, "r") as f:
                config = yaml.safe_load(f) or {}
                logger.debug("Config loaded successfully", keys=list(config.keys()))
                return config
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", error=str(e))
            raise ValueError(f"Failed to load config from {self.config_file}: {e}") from e

    def _save(self) -> None:
        """Save configuration to YAML file."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
            logger.debug("Config saved successfully")
        except OSError as e:
            logger.error("Failed to save config", error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value, checking local config before global config."""
        if key in self._config:
            logger.debug("Getting config value from local", key=key)
            return self._config[key]

        if not self.is_global and key in self._global_config:
            logger.debug("Getting config value from global", key=key)
            return self._global_config[key]

        logger.debug("Config value not found", key=key)
        return default

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> None:
        """Remove a configuration value."""
        logger.debug("Unsetting config value", key=key)
        if key in self._config:
            del self._config[key]
            self._save()

    def list(self) -> dict[str, Any]:
        """List all configuration settings.

        For local config, merges global config with local config (local takes precedence).
        """
        if self.is_global:
            logger.debug("Listing global config values", count=len(self._config))
            return self._config.copy()

        merged = self._global_config.copy()
        merged.update(self._config)
        logger.debug("Listing merged config values", count=len(merged))
        return merged


def get_config(use_global: bool = False) -> Config:
    """Get a configuration instance.

    Args:
        use_global: If True, return global config. If False, return local config with global fallback.

    Returns:
        Config instance
    """
    return Config(use_global=use_global)


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings for the server and CLI."""

    api_key: str
    endpoint: str = LINEAR_GRAPHQL_ENDPOINT
    timeout: float = 30.0
    max_workers: int = 8
    label_catalog_limit: int = 250
    state_synonyms: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_STATE_SYNONYMS))


def _number(config: Config, key: str, default: Any, cast: type) -> Any:
    value = config.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for {key}: {value!r}") from e


def load_settings(config: Config | None = None) -> Settings:
    """Build settings from the environment and YAML configuration.

    The ``LINEAR_API_KEY`` environment variable takes precedence over
    ``linear.api_key`` in the config files.
    """
    config = config or get_config()

    api_key = os.environ.get(API_KEY_ENV) or config.get("linear.api_key")
    if not api_key:
        raise ValueError(
            "Linear API key not configured. Set it using:\n"
            f"  export {API_KEY_ENV}=<key>\n"
            "  linear-mcp config set linear.api_key <key>"
        )

    synonyms = config.get("resolver.state_synonyms") or DEFAULT_STATE_SYNONYMS
    if not isinstance(synonyms, dict):
        raise ValueError("resolver.state_synonyms must be a mapping of synonym to state type")

    settings = Settings(
        api_key=str(api_key),
        endpoint=config.get("linear.endpoint", LINEAR_GRAPHQL_ENDPOINT),
        timeout=_number(config, "linear.timeout", 30.0, float),
        max_workers=max(1, _number(config, "resolver.max_workers", 8, int)),
        label_catalog_limit=_number(config, "resolver.label_catalog_limit", 250, int),
        state_synonyms={str(k).lower(): str(v) for k, v in synonyms.items()},
    )
    logger.debug("Settings loaded", endpoint=settings.endpoint, max_workers=settings.max_workers)
    return settings
