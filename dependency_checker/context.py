"""Execution context supplied by the GitHub Actions runner."""

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from dependency_checker.errors import ConfigurationError
from dependency_checker.models import ExecutionContext

logger = structlog.get_logger()

SUPPORTED_EVENTS = ("pull_request", "issues")


def load_event_payload(environ: Mapping[str, str]) -> dict[str, Any]:
    """Read the webhook payload the runner stored at GITHUB_EVENT_PATH."""
    event_path = environ.get("GITHUB_EVENT_PATH")
    if not event_path or not Path(event_path).exists():
        raise ConfigurationError("GITHUB_EVENT_PATH is not set or does not exist.")

    try:
        with open(event_path) as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read event payload from {event_path}", e) from e

    if not isinstance(payload, dict):
        raise ConfigurationError("Event payload must be a JSON object.")
    return payload


def load_context(environ: Mapping[str, str] | None = None) -> ExecutionContext:
    """Build the execution context from the runner environment.

    Raises:
        ConfigurationError: if the event is not supported or required values are missing.
    """
    environ = os.environ if environ is None else environ

    event_name = environ.get("GITHUB_EVENT_NAME", "")
    if event_name not in SUPPORTED_EVENTS:
        raise ConfigurationError(f"Event name '{event_name}' is not supported. Expected 'pull_request' or 'issues'.")

    repository = environ.get("GITHUB_REPOSITORY", "")
    owner, _, repo = repository.partition("/")
    if not owner or not repo:
        raise ConfigurationError(f"GITHUB_REPOSITORY must be 'owner/repo', got '{repository}'.")

    payload = load_event_payload(environ)
    item = payload.get("pull_request") or payload.get("issue")
    if not isinstance(item, dict):
        raise ConfigurationError("Payload not found. Expected 'pull_request' or 'issue'.")

    number = item.get("number")
    if not isinstance(number, int):
        raise ConfigurationError("Payload does not contain an issue or pull request number.")

    context = ExecutionContext(
        owner=owner,
        repo=repo,
        subject_number=number,
        event_name=event_name,
        server_url=environ.get("GITHUB_SERVER_URL") or "https://github.com",
        api_url=environ.get("GITHUB_API_URL") or "https://api.github.com",
    )
    logger.debug("Execution context loaded", event=event_name, subject=context.subject_reference.key)
    return context


def load_token(environ: Mapping[str, str] | None = None) -> str:
    """Return the API token from the action input or the runner's GITHUB_TOKEN."""
    environ = os.environ if environ is None else environ
    token = environ.get("INPUT_GITHUB_TOKEN") or environ.get("GITHUB_TOKEN")
    if not token:
        raise ConfigurationError("GitHub token required. Set the 'github-token' input or GITHUB_TOKEN.")
    return token
