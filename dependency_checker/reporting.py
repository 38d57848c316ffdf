"""GitHub Actions output channel.

Workflow commands (annotations, log groups) are written to stdout; step
outputs and the job summary are appended to the files named by
GITHUB_OUTPUT and GITHUB_STEP_SUMMARY.
"""

import os
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TextIO

import structlog

from dependency_checker.models import Entity, EvaluationResult
from dependency_checker.renderer import display_key, render_summary

logger = structlog.get_logger()


def escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class ActionsReporter:
    """Reports run results through GitHub Actions workflow commands and files."""

    def __init__(self, environ: Mapping[str, str] | None = None, stream: TextIO | None = None) -> None:
        self.environ = os.environ if environ is None else environ
        self.stream = stream
        self.failed = False
        self.failure_message: str | None = None

    def _command(self, name: str, message: str = "") -> None:
        print(f"::{name}::{escape_data(message)}", file=self.stream or sys.stdout, flush=True)

    def _append(self, variable: str, text: str) -> bool:
        path = self.environ.get(variable)
        if not path:
            return False
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)
        return True

    @contextmanager
    def group(self, name: str) -> Iterator[None]:
        """Wrap the enclosed output in a collapsible log group."""
        self._command("group", name)
        try:
            yield
        finally:
            self._command("endgroup")

    def notice(self, message: str) -> None:
        self._command("notice", message)

    def warning(self, message: str) -> None:
        self._command("warning", message)

    def error(self, message: str) -> None:
        self._command("error", message)

    def set_output(self, name: str, value: str | bool) -> None:
        if isinstance(value, bool):
            value = "true" if value else "false"
        if not self._append("GITHUB_OUTPUT", f"{name}={value}\n"):
            logger.debug("GITHUB_OUTPUT is not set, output not written", name=name, value=value)

    def set_failed(self, message: str) -> None:
        """Mark the run as failed; the CLI turns this into a non-zero exit status."""
        self.failed = True
        self.failure_message = message
        self.error(message)

    def write_summary(self, markdown: str) -> None:
        if not self._append("GITHUB_STEP_SUMMARY", markdown):
            logger.debug("GITHUB_STEP_SUMMARY is not set, summary not written")


def failure_message(subject: Entity, dependencies: list[Entity]) -> str:
    numbers = ", ".join(display_key(subject, entity) for entity in dependencies)
    return f"Dependencies must be resolved before {subject.pending_verb} {subject.type_name} #{subject.number}: {numbers}."


def report_result(result: EvaluationResult, reporter: ActionsReporter) -> None:
    """Publish outputs, annotations, the job summary and the failure signal for a finished evaluation."""
    subject = result.subject

    for message in dict.fromkeys(result.warnings):
        reporter.warning(message)
    for reference in result.unverifiable:
        reporter.warning(f"Failed to fetch {reference}. You'll need to verify it manually.")
    for failure in result.failed_updates:
        reporter.warning(f"Skipped updating {failure.reference}: {failure.error}")

    if result.dependents:
        logger.info(f"{subject.type_name} #{subject.number} blocks dependents", count=len(result.dependents))
    else:
        reporter.notice(f"{subject.type_name} #{subject.number} does not block a dependent.")

    reporter.write_summary(render_summary(result))
    reporter.set_output("has-dependencies", result.has_dependencies)

    if result.has_dependencies:
        reporter.set_failed(failure_message(subject, result.dependencies))
    else:
        verb = "merge" if subject.is_pull_request else "close"
        reporter.notice(f"All dependencies are resolved. Ready to {verb} {subject.type_name} #{subject.number}.")
