"""GitHub REST API tracker implementation using PyGithub."""

import requests
import structlog
from github import Auth, Github, GithubException
from github.GithubRetry import GithubRetry
from github.Issue import Issue
from github.Repository import Repository

from dependency_checker.errors import FetchFailed
from dependency_checker.models import Comment, Entity, EntityReference
from dependency_checker.tracker import Tracker

logger = structlog.get_logger()

DEFAULT_API_URL = "https://api.github.com"


class GitHubTracker(Tracker):
    """Tracker backed by GitHub issues and pull requests."""

    def __init__(self, token: str | None, api_url: str = DEFAULT_API_URL, retries: int = 3) -> None:
        """Initialize GitHub tracker.

        Args:
            token: GitHub token (the workflow's GITHUB_TOKEN in Actions)
            api_url: API origin, e.g. https://ghe.example.com/api/v3 on GitHub Enterprise
            retries: Attempts for requests hitting rate limits or server errors
        """
        if not token:
            raise ValueError("GitHub token required")

        logger.debug("Initializing GitHub tracker", api_url=api_url)
        self.client = Github(auth=Auth.Token(token), base_url=api_url, retry=GithubRetry(total=retries))
        self._repositories: dict[str, Repository] = {}
        self._issues: dict[str, Issue] = {}

    def _repository(self, owner: str, repo: str) -> Repository:
        full_name = f"{owner}/{repo}"
        if full_name not in self._repositories:
            self._repositories[full_name] = self.client.get_repo(full_name, lazy=True)
        return self._repositories[full_name]

    def _issue(self, reference: EntityReference) -> Issue:
        if reference.key not in self._issues:
            repository = self._repository(reference.owner, reference.repo)
            self._issues[reference.key] = repository.get_issue(number=reference.number)
        return self._issues[reference.key]

    def _issue_to_entity(self, reference: EntityReference, issue: Issue) -> Entity:
        """Convert a GitHub issue (which may be a pull request) to an Entity."""
        return Entity(
            owner=reference.owner,
            repo=reference.repo,
            number=issue.number,
            title=issue.title,
            html_url=issue.html_url,
            state=issue.state.lower(),
            is_pull_request=issue.pull_request is not None,
            body=issue.body or "",
            labels=tuple(label.name for label in issue.labels),
        )

    def get_entity(self, reference: EntityReference) -> Entity:
        logger.debug("Fetching issue", reference=reference.key)
        try:
            issue = self._issue(reference)
            entity = self._issue_to_entity(reference, issue)
        except (GithubException, requests.exceptions.RequestException) as e:
            logger.debug("Failed to fetch issue", reference=reference.key, error=str(e))
            raise FetchFailed(reference, e) from e

        logger.debug("Fetched issue", reference=reference.key, state=entity.state, type=entity.type_name)
        return entity

    def list_comments(self, entity: Entity) -> list[Comment]:
        logger.debug("Listing comments", reference=entity.reference.key)
        try:
            comments = [
                Comment(
                    id=comment.id,
                    author=comment.user.login if comment.user else None,
                    body=comment.body or "",
                )
                for comment in self._issue(entity.reference).get_comments()
            ]
        except (GithubException, requests.exceptions.RequestException) as e:
            logger.debug("Failed to list comments", reference=entity.reference.key, error=str(e))
            raise FetchFailed(entity.reference, e, what="comments of") from e

        logger.debug("Listed comments", reference=entity.reference.key, count=len(comments))
        return comments

    def create_comment(self, entity: Entity, body: str) -> None:
        logger.debug("Creating comment", reference=entity.reference.key)
        self._issue(entity.reference).create_comment(body)

    def add_labels(self, entity: Entity, labels: list[str]) -> None:
        logger.debug("Adding labels", reference=entity.reference.key, labels=labels)
        self._issue(entity.reference).add_to_labels(*labels)

    def remove_label(self, entity: Entity, label: str) -> bool:
        logger.debug("Removing label", reference=entity.reference.key, label=label)
        try:
            self._issue(entity.reference).remove_from_labels(label)
        except GithubException as e:
            if e.status == 404:
                logger.debug("Label was not present", reference=entity.reference.key, label=label)
                return False
            raise
        return True
