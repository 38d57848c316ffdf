"""CLI for the dependency checker."""

import sys
from pathlib import Path
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter

from dependency_checker.config import Config, Settings, load_settings
from dependency_checker.config_commands import config_app
from dependency_checker.context import load_context, load_token
from dependency_checker.errors import CheckerError
from dependency_checker.extractor import ReferenceExtractor
from dependency_checker.models import ExecutionContext
from dependency_checker.reporting import ActionsReporter, report_result
from dependency_checker.resolver import DependencyResolver
from dependency_checker.tracker import Tracker
from dependency_checker.trackers import GitHubTracker

logger = structlog.get_logger()

app = App(
    help="Dependency Checker - keeps issues and pull requests in sync with their declared dependencies",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def run_check(
    context: ExecutionContext,
    settings: Settings,
    tracker: Tracker,
    reporter: ActionsReporter,
) -> bool:
    """Evaluate the triggering entity and report the outcome.

    Returns:
        True if the run succeeded, False if it must be marked failed.
    """
    try:
        result = DependencyResolver(tracker, context, settings, reporter).evaluate()
    except CheckerError as e:
        logger.error("Dependency check failed", error=str(e), cause=str(e.cause) if e.cause else None)
        reporter.set_failed(f"Dependency check failed: {e}")
        return False

    report_result(result, reporter)
    return not reporter.failed


@app.command
def check(
    phrases: str | None = None,
    blocked_label: str | None = None,
    blocking_label: str | None = None,
    config_file: Path | None = None,
) -> None:
    """Check the dependencies of the issue or pull request that triggered the workflow.

    Args:
        phrases: Pipe-delimited key phrases that open a declaration block
        blocked_label: Label for entities with open dependencies
        blocking_label: Label for entities with open dependents
        config_file: Repository configuration file
    """
    reporter = ActionsReporter()

    try:
        context = load_context()
        settings = load_settings(
            overrides={"phrases": phrases, "blocked_label": blocked_label, "blocking_label": blocking_label},
            config=Config(config_file),
        )
        tracker = GitHubTracker(load_token(), api_url=context.api_url)
    except (CheckerError, ValueError) as e:
        logger.error("Invalid configuration", error=str(e))
        reporter.set_failed(f"Dependency check failed: {e}")
        raise SystemExit(1) from e

    if not run_check(context, settings, tracker, reporter):
        raise SystemExit(1)


@app.command
def extract(
    path: Path | None = None,
    *,
    owner: str,
    repo: str,
    number: int = 0,
    server_url: str = "https://github.com",
    phrases: str | None = None,
) -> None:
    """Print the references declared in a text file (or stdin).

    Args:
        path: File to read; stdin when omitted
        owner: Owner used for '#123' shorthands
        repo: Repository used for '#123' shorthands
        number: Number of the entity the text belongs to (excluded from the output)
        server_url: Server origin for recognizing full URLs
        phrases: Pipe-delimited key phrases
    """
    text = path.read_text() if path else sys.stdin.read()
    context = ExecutionContext(owner=owner, repo=repo, subject_number=number, server_url=server_url)
    settings = Settings(phrases=phrases) if phrases else Settings()

    references = ReferenceExtractor(context, settings.key_phrases).extract_references(text)
    if not references:
        print("No references found")
        return

    for reference in references:
        print(reference.key)


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
