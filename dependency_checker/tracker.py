"""Tracker interface: the issue-tracking operations the checker relies on."""

from abc import ABC, abstractmethod

from dependency_checker.models import Comment, Entity, EntityReference


class Tracker(ABC):
    """Abstract base class for issue trackers."""

    @abstractmethod
    def get_entity(self, reference: EntityReference) -> Entity:
        """Fetch an issue or pull request.

        Raises:
            FetchFailed: if the entity could not be fetched.
        """
        pass

    @abstractmethod
    def list_comments(self, entity: Entity) -> list[Comment]:
        """List the comments of an entity in posting order.

        Raises:
            FetchFailed: if the comments could not be fetched.
        """
        pass

    @abstractmethod
    def create_comment(self, entity: Entity, body: str) -> None:
        """Post a new comment on an entity."""
        pass

    @abstractmethod
    def add_labels(self, entity: Entity, labels: list[str]) -> None:
        """Add labels to an entity."""
        pass

    @abstractmethod
    def remove_label(self, entity: Entity, label: str) -> bool:
        """Remove a label from an entity.

        Returns:
            False if the label was not present, True if it was removed.
        """
        pass
