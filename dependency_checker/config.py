"""Configuration for the dependency checker.

Settings are resolved from, in order of precedence:

1. explicit overrides (command line options),
2. GitHub Action inputs, exposed as ``INPUT_<NAME>`` environment variables,
3. the repository configuration file ``.github/dependency-checker.yml``,
4. built-in defaults.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger()

DEFAULT_CONFIG_FILE = Path(".github") / "dependency-checker.yml"

# Setting name -> action input environment variables, first non-empty wins.
INPUT_VARIABLES: dict[str, tuple[str, ...]] = {
    "phrases": ("INPUT_PHRASES",),
    "blocked_label": ("INPUT_BLOCKED_LABEL", "INPUT_LABEL"),
    "blocking_label": ("INPUT_BLOCKING_LABEL",),
    "bot_login": ("INPUT_BOT_LOGIN",),
}


@dataclass(frozen=True)
class Settings:
    """Effective settings for one run."""

    phrases: str = "depends on|blocked by"
    blocked_label: str = "blocked"
    blocking_label: str = "blocking"
    bot_login: str = "github-actions[bot]"

    @property
    def key_phrases(self) -> list[str]:
        """The configured key phrases, without empty alternatives."""
        return [phrase.strip() for phrase in self.phrases.split("|") if phrase.strip()]


class Config:
    """Repository configuration stored as a flat YAML mapping."""

    def __init__(self, config_file: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            config_file: Path of the YAML file (defaults to .github/dependency-checker.yml in the current directory)
        """
        self.config_file = Path(config_file) if config_file is not None else Path.cwd() / DEFAULT_CONFIG_FILE
        self._config: dict[str, Any] = self._load()
        logger.debug("Config initialized", config_file=str(self.config_file))

    def _load(self) -> dict[str, Any]:
        if not self.config_file.exists():
            logger.debug("Config file does not exist, using empty config", config_file=str(self.config_file))
            return {}

        try:
            with open(self.config_file, "r") as f:
                config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", error=str(e))
            raise ValueError(f"Failed to load config from {self.config_file}: {e}") from e

        if not isinstance(config, dict):
            raise ValueError(f"Config file {self.config_file} must contain a mapping")

        logger.debug("Config loaded successfully", keys=list(config.keys()))
        return config

    def _save(self) -> None:
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error("Failed to save config", error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e
        logger.debug("Config saved successfully")

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self._config.get(key)
        if value is None:
            return default
        return str(value)

    def set(self, key: str, value: str) -> None:
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> None:
        logger.debug("Unsetting config value", key=key)
        if key in self._config:
            del self._config[key]
            self._save()

    def list(self) -> dict[str, str]:
        return {key: str(value) for key, value in self._config.items()}


def read_input(name: str, environ: Mapping[str, str] | None = None) -> str | None:
    """Return the first non-empty action input configured for ``name``."""
    environ = os.environ if environ is None else environ
    for variable in INPUT_VARIABLES.get(name, (f"INPUT_{name.upper()}",)):
        value = environ.get(variable, "").strip()
        if value:
            return value
    return None


def load_settings(
    overrides: Mapping[str, str | None] | None = None,
    environ: Mapping[str, str] | None = None,
    config: Config | None = None,
) -> Settings:
    """Resolve the effective settings from overrides, action inputs, config file and defaults."""
    overrides = overrides or {}
    config = config if config is not None else Config()

    values: dict[str, str] = {}
    for setting in fields(Settings):
        name = setting.name
        value = overrides.get(name) or read_input(name, environ) or config.get(name)
        if value:
            values[name] = value

    settings = Settings(**values)
    if not settings.key_phrases:
        raise ValueError("At least one key phrase must be configured")

    logger.debug("Settings resolved", **values)
    return settings
