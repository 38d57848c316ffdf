"""Configuration commands for the dependency checker CLI."""

import sys
from dataclasses import fields
from pathlib import Path
from typing import NoReturn

from cyclopts import App

from dependency_checker.config import Config, Settings

config_app = App(name="config", help="Manage the repository configuration file")

KNOWN_KEYS = [setting.name for setting in fields(Settings)]


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    raise SystemExit(1)


def _open(config_file: Path | None) -> Config:
    try:
        return Config(config_file)
    except ValueError as e:
        _fail(str(e))


@config_app.command
def set(key: str, value: str, config_file: Path | None = None) -> None:
    """Set a configuration setting.

    Args:
        key: Configuration key (phrases, blocked_label, blocking_label, bot_login)
        value: Configuration value
        config_file: Configuration file to edit
    """
    if key not in KNOWN_KEYS:
        _fail(f"Unknown configuration key: '{key}'. Supported keys: {', '.join(KNOWN_KEYS)}")
    config = _open(config_file)
    try:
        config.set(key, value)
    except ValueError as e:
        _fail(str(e))
    print(f"Set {key} = {value} ({config.config_file})")


@config_app.command
def unset(key: str, config_file: Path | None = None) -> None:
    """Unset a configuration setting."""
    config = _open(config_file)
    config.unset(key)
    print(f"Unset {key} ({config.config_file})")


@config_app.command
def get(key: str, config_file: Path | None = None) -> None:
    """Get the value of a configuration setting."""
    value = _open(config_file).get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {value}")


@config_app.command(name="list")
def list_config(config_file: Path | None = None) -> None:
    """List all configuration settings."""
    config = _open(config_file)
    settings = config.list()

    if not settings:
        print(f"No configuration settings in {config.config_file}")
        return

    print(f"Configuration settings ({config.config_file}):\n")
    for key, value in settings.items():
        print(f"{key} = {value}")
