"""Shared fixtures: an in-memory tracker and helpers to build entities."""

from dataclasses import replace

import pytest

from dependency_checker.config import Settings
from dependency_checker.errors import FetchFailed
from dependency_checker.models import Comment, Entity, EntityReference, ExecutionContext
from dependency_checker.tracker import Tracker

BOT = "github-actions[bot]"


def make_entity(
    number: int,
    body: str = "",
    state: str = "open",
    is_pull_request: bool = False,
    owner: str = "owner",
    repo: str = "repo",
    labels: tuple[str, ...] = (),
    title: str | None = None,
) -> Entity:
    kind = "pull" if is_pull_request else "issues"
    return Entity(
        owner=owner,
        repo=repo,
        number=number,
        title=title or f"Entity {number}",
        html_url=f"https://github.com/{owner}/{repo}/{kind}/{number}",
        state=state,
        is_pull_request=is_pull_request,
        body=body,
        labels=labels,
    )


class InMemoryTracker(Tracker):
    """Tracker fake that records every write."""

    def __init__(self) -> None:
        self.entities: dict[str, Entity] = {}
        self.comments: dict[str, list[Comment]] = {}
        self.labels: dict[str, set[str]] = {}
        self.posted: list[tuple[str, str]] = []
        self.added_labels: list[tuple[str, list[str]]] = []
        self.removed_labels: list[tuple[str, str]] = []
        self.fetch_errors: set[str] = set()
        self.comment_errors: set[str] = set()
        self.remove_errors: dict[str, Exception] = {}
        self._next_comment_id = 1

    def add(self, entity: Entity) -> Entity:
        key = entity.reference.key
        self.entities[key] = entity
        self.comments.setdefault(key, [])
        self.labels[key] = set(entity.labels)
        return entity

    def add_comment(self, entity: Entity, body: str, author: str = BOT) -> Comment:
        comment = Comment(id=self._next_comment_id, author=author, body=body)
        self._next_comment_id += 1
        self.comments.setdefault(entity.reference.key, []).append(comment)
        return comment

    def get_entity(self, reference: EntityReference) -> Entity:
        if reference.key in self.fetch_errors or reference.key not in self.entities:
            raise FetchFailed(reference, LookupError("Not Found"))
        entity = self.entities[reference.key]
        return replace(entity, labels=tuple(sorted(self.labels.get(reference.key, ()))))

    def list_comments(self, entity: Entity) -> list[Comment]:
        if entity.reference.key in self.comment_errors:
            raise FetchFailed(entity.reference, LookupError("Server Error"), what="comments of")
        return list(self.comments.get(entity.reference.key, []))

    def create_comment(self, entity: Entity, body: str) -> None:
        self.posted.append((entity.reference.key, body))
        self.add_comment(entity, body)

    def add_labels(self, entity: Entity, labels: list[str]) -> None:
        self.added_labels.append((entity.reference.key, list(labels)))
        self.labels.setdefault(entity.reference.key, set()).update(labels)

    def remove_label(self, entity: Entity, label: str) -> bool:
        if label in self.remove_errors:
            raise self.remove_errors[label]
        self.removed_labels.append((entity.reference.key, label))
        present = self.labels.setdefault(entity.reference.key, set())
        if label not in present:
            return False
        present.discard(label)
        return True

    def posted_to(self, key: str) -> list[str]:
        return [body for target, body in self.posted if target == key]


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(owner="owner", repo="repo", subject_number=999, event_name="pull_request")


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def tracker() -> InMemoryTracker:
    return InMemoryTracker()
