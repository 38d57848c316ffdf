"""Status reconciliation: keeps one entity's status comment and labels in sync."""

import structlog

from dependency_checker.config import Settings
from dependency_checker.errors import LabelRemovalFailed, ReconciliationFailed
from dependency_checker.models import Comment, Entity
from dependency_checker.renderer import is_status_comment, render_status_comment
from dependency_checker.tracker import Tracker

logger = structlog.get_logger()


class ReconciliationSession:
    """Status update of a single subject entity.

    A new status comment is posted only when its rendered body differs from
    the last one the bot posted; older comments are left as history. The
    "blocked" label follows open dependencies and the "blocking" label
    follows open dependents.
    """

    def __init__(self, tracker: Tracker, subject: Entity, settings: Settings) -> None:
        self.tracker = tracker
        self.subject = subject
        self.settings = settings
        self._labels: set[str] = set(subject.labels)
        self._last_bot_comment: Comment | None = None
        self._comments_loaded = False

    def last_bot_comment(self, refresh: bool = False) -> Comment | None:
        """Return the most recent status comment posted by the bot, if any.

        The comment list is fetched once per session unless ``refresh`` is set.

        Raises:
            FetchFailed: if the comments could not be listed.
        """
        if refresh or not self._comments_loaded:
            comments = self.tracker.list_comments(self.subject)
            self._last_bot_comment = next(
                (
                    comment
                    for comment in reversed(comments)
                    if comment.author == self.settings.bot_login and is_status_comment(comment.body)
                ),
                None,
            )
            self._comments_loaded = True
        return self._last_bot_comment

    def reconcile(self, dependencies: list[Entity], dependents: list[Entity]) -> None:
        """Post a status comment and toggle labels if the relationships changed.

        Raises:
            ReconciliationFailed: wrapping any error raised while updating the subject.
        """
        logger.info(
            f"Updating {self.subject.type_name} #{self.subject.number}",
            dependencies=len(dependencies),
            dependents=len(dependents),
        )
        try:
            self._reconcile(dependencies, dependents)
        except Exception as e:
            logger.debug("Unexpected error while updating", number=self.subject.number, error=str(e))
            raise ReconciliationFailed(self.subject.number, self.subject.type_name, e) from e

        logger.info(f"Updating {self.subject.type_name} #{self.subject.number} successfully finished")

    def _reconcile(self, dependencies: list[Entity], dependents: list[Entity]) -> None:
        has_dependencies = len(dependencies) > 0
        has_dependents = len(dependents) > 0
        blocked, blocking = self.settings.blocked_label, self.settings.blocking_label

        last_comment = self.last_bot_comment()
        new_body = render_status_comment(self.subject, dependencies, dependents)
        comment_changed = last_comment is None or last_comment.body != new_body

        labels_to_add = [
            label
            for label, wanted in ((blocked, has_dependencies), (blocking, has_dependents))
            if wanted and label not in self._labels
        ]
        labels_to_remove = [
            label
            for label, wanted in ((blocked, has_dependencies), (blocking, has_dependents))
            if not wanted and label in self._labels
        ]

        if not comment_changed:
            logger.info("The dependencies/dependents have not been changed")
            return

        if has_dependencies or has_dependents:
            logger.info("The dependencies/dependents have been changed")
            self._post_comment(new_body)
            self._add_labels(labels_to_add)
            self._remove_labels(labels_to_remove)
            return

        logger.info("All dependencies/dependents have been resolved")
        if last_comment is not None:
            self._post_comment(new_body)
        self._remove_labels(labels_to_remove)

    def _post_comment(self, body: str) -> None:
        logger.info(f"Posting a comment to {self.subject.type_name} #{self.subject.number}")
        self.tracker.create_comment(self.subject, body)
        self._last_bot_comment = Comment(id=0, author=self.settings.bot_login, body=body)

    def _add_labels(self, labels: list[str]) -> None:
        if not labels:
            return
        logger.info("Adding labels", labels=labels)
        self.tracker.add_labels(self.subject, labels)
        self._labels.update(labels)

    def _remove_labels(self, labels: list[str]) -> None:
        if not labels:
            return

        logger.info("Removing labels", labels=labels)
        errors: dict[str, BaseException] = {}
        for label in labels:
            try:
                if not self.tracker.remove_label(self.subject, label):
                    logger.debug(f"Label '{label}' was not present", number=self.subject.number)
            except Exception as e:
                logger.debug("Failed to remove label", label=label, error=str(e))
                errors[label] = e
                continue
            self._labels.discard(label)

        if errors:
            raise LabelRemovalFailed(errors)
