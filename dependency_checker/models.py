"""Data models for the dependency checker."""

from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import urlparse

PULL_REQUEST = "Pull Request"
ISSUE = "Issue"


@dataclass(frozen=True)
class EntityReference:
    """A reference to an issue or pull request, as written in free text."""

    owner: str
    repo: str
    number: int

    @property
    def key(self) -> str:
        """Uniqueness key in the form ``owner/repo#number``."""
        return f"{self.owner}/{self.repo}#{self.number}"

    def same_as(self, other: "EntityReference") -> bool:
        """Compare identities the way GitHub does (owner and repo are case-insensitive)."""
        return (
            self.number == other.number
            and self.owner.lower() == other.owner.lower()
            and self.repo.lower() == other.repo.lower()
        )

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class Entity:
    """A fetched issue or pull request."""

    owner: str
    repo: str
    number: int
    title: str
    html_url: str
    state: str = "open"
    is_pull_request: bool = False
    body: str = ""
    labels: tuple[str, ...] = ()

    @property
    def reference(self) -> EntityReference:
        return EntityReference(self.owner, self.repo, self.number)

    @property
    def is_open(self) -> bool:
        return self.state != "closed"

    @property
    def type_name(self) -> str:
        """'Pull Request' or 'Issue'."""
        return PULL_REQUEST if self.is_pull_request else ISSUE

    @property
    def short_type(self) -> str:
        """'PR' or 'Issue', as used in comment bullet entries."""
        return "PR" if self.is_pull_request else "Issue"

    @property
    def action_verb(self) -> str:
        """Verb used in status comments ('merged' or 'resolved')."""
        return "merged" if self.is_pull_request else "resolved"

    @property
    def pending_verb(self) -> str:
        """Verb used in failure messages ('merging' or 'closing')."""
        return "merging" if self.is_pull_request else "closing"


@dataclass(frozen=True)
class Comment:
    """A comment posted on an issue or pull request."""

    id: int
    author: str | None
    body: str


@dataclass(frozen=True)
class ExecutionContext:
    """Where the evaluation runs and which entity triggered it."""

    owner: str
    repo: str
    subject_number: int
    event_name: str = "issues"
    server_url: str = "https://github.com"
    api_url: str = "https://api.github.com"

    @property
    def host(self) -> str:
        """Hostname of the server origin, used to recognize full issue/PR URLs."""
        return urlparse(self.server_url).hostname or "github.com"

    @property
    def subject_reference(self) -> EntityReference:
        return EntityReference(self.owner, self.repo, self.subject_number)

    def for_entity(self, entity: Entity) -> "ExecutionContext":
        """Return a context in which ``entity`` is the subject."""
        return replace(self, owner=entity.owner, repo=entity.repo, subject_number=entity.number)


@dataclass
class UpdateFailure:
    """A related entity whose status update was skipped."""

    reference: EntityReference
    error: Exception


@dataclass
class EvaluationResult:
    """Outcome of evaluating the triggering entity and its one-hop neighbours."""

    subject: Entity
    dependencies: list[Entity] = field(default_factory=list)
    dependents: list[Entity] = field(default_factory=list)
    unverifiable: list[EntityReference] = field(default_factory=list)
    failed_updates: list[UpdateFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_dependencies(self) -> bool:
        return len(self.dependencies) > 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject.reference.key,
            "dependencies": [entity.reference.key for entity in self.dependencies],
            "dependents": [entity.reference.key for entity in self.dependents],
            "unverifiable": [reference.key for reference in self.unverifiable],
            "failed_updates": [failure.reference.key for failure in self.failed_updates],
        }
