"""Exceptions raised by the dependency checker."""

from dependency_checker.models import EntityReference


class CheckerError(Exception):
    """Base exception for all dependency checker errors."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConfigurationError(CheckerError):
    """Unsupported trigger event or missing execution context."""


class FetchFailed(CheckerError):
    """An issue, pull request or its comments could not be fetched."""

    def __init__(self, reference: EntityReference, cause: BaseException | None = None, what: str = "issue") -> None:
        super().__init__(f"Failed to fetch {what} {reference.key}", cause)
        self.reference = reference


class ReconciliationFailed(CheckerError):
    """Computing or posting the status update of one entity failed."""

    def __init__(self, number: int, entity_type: str, cause: BaseException | None = None) -> None:
        super().__init__(f"Error updating {entity_type} #{number}.", cause)
        self.number = number
        self.entity_type = entity_type


class LabelRemovalFailed(CheckerError):
    """One or more labels could not be removed (labels that were not present are not failures)."""

    def __init__(self, errors: dict[str, BaseException]) -> None:
        labels = ", ".join(errors)
        super().__init__(f"Failed to remove {len(errors)} label(s): {labels}")
        self.errors = errors
