"""Dependency and dependent resolution for the triggering entity and its neighbours.

An evaluation runs in this order:

1. fetch the subject (the entity that triggered the run),
2. resolve its open dependencies from its description,
3. resolve its open dependents from its last status comment,
4. reconcile the subject's status,
5. resolve and reconcile every dependency, then every dependent, one at a time.

Only one hop is taken. A dependency of a dependency is updated when its own
event fires, not by this run.
"""

from contextlib import AbstractContextManager, nullcontext
from typing import NamedTuple

import structlog

from dependency_checker.config import Settings
from dependency_checker.errors import CheckerError, FetchFailed
from dependency_checker.extractor import ReferenceExtractor
from dependency_checker.models import Entity, EntityReference, EvaluationResult, ExecutionContext, UpdateFailure
from dependency_checker.reconciler import ReconciliationSession
from dependency_checker.reporting import ActionsReporter
from dependency_checker.tracker import Tracker

logger = structlog.get_logger()


class Resolution(NamedTuple):
    """Open dependencies and dependents of one entity."""

    dependencies: list[Entity]
    dependents: list[Entity]


class DependencyResolver:
    """Resolves dependency relationships and drives the status updates."""

    def __init__(
        self,
        tracker: Tracker,
        context: ExecutionContext,
        settings: Settings,
        reporter: ActionsReporter | None = None,
    ) -> None:
        self.tracker = tracker
        self.context = context
        self.settings = settings
        self.reporter = reporter
        self.warnings: list[str] = []

    def _group(self, name: str) -> AbstractContextManager[None]:
        if self.reporter is None:
            return nullcontext()
        return self.reporter.group(name)

    def extractor_for(self, entity: Entity) -> ReferenceExtractor:
        """Return an extractor in which ``entity`` is the subject."""
        return ReferenceExtractor(self.context.for_entity(entity), self.settings.key_phrases, self.warnings)

    def evaluate(self) -> EvaluationResult:
        """Evaluate the triggering entity and update it and its direct neighbours.

        Raises:
            FetchFailed: if the subject or its comments could not be fetched.
            ReconciliationFailed: if the subject's status could not be updated.
        """
        subject = self.tracker.get_entity(self.context.subject_reference)
        logger.info(f"Evaluating dependency relationships of {subject.type_name} #{subject.number}")

        result = EvaluationResult(subject=subject)
        self.warnings = result.warnings
        if not subject.body.strip():
            logger.warning(f"{subject.type_name} #{subject.number} has an empty body")
            self.warnings.append(f"{subject.type_name} #{subject.number} has an empty body.")

        session = ReconciliationSession(self.tracker, subject, self.settings)

        with self._group("Getting dependencies..."):
            result.dependencies = self.find_dependencies(subject, result.unverifiable)
        with self._group("Getting dependents..."):
            result.dependents = self.find_dependents(subject, session, result.unverifiable)
        with self._group(f"Updating current {subject.type_name}..."):
            session.reconcile(result.dependencies, result.dependents)

        for dependency in result.dependencies:
            with self._group(f"Updating dependency {dependency.reference}..."):
                self._update_related(dependency, result, seed_dependent=subject)

        for dependent in result.dependents:
            with self._group(f"Updating dependent {dependent.reference}..."):
                self._update_related(dependent, result)

        logger.info("Evaluation finished", **result.as_dict())
        return result

    def resolve(self, entity: Entity, session: ReconciliationSession | None = None) -> Resolution:
        """Resolve the open dependencies and dependents of ``entity``."""
        session = session or ReconciliationSession(self.tracker, entity, self.settings)
        return Resolution(
            dependencies=self.find_dependencies(entity),
            dependents=self.find_dependents(entity, session),
        )

    def find_dependencies(self, entity: Entity, unverifiable: list[EntityReference] | None = None) -> list[Entity]:
        """Fetch the open entities declared as dependencies in the description of ``entity``."""
        references = self.extractor_for(entity).extract_references(entity.body)
        logger.info(f"Analyzing {len(references)} dependencies", entity=entity.reference.key)
        return self._fetch_open(entity, references, "dependency", unverifiable)

    def find_dependents(
        self,
        entity: Entity,
        session: ReconciliationSession,
        unverifiable: list[EntityReference] | None = None,
    ) -> list[Entity]:
        """Fetch the open dependents recorded in the last status comment of ``entity``.

        A dependent that no longer declares ``entity`` in its own description is dropped.

        Raises:
            FetchFailed: if the comments of ``entity`` could not be listed.
        """
        comment = session.last_bot_comment()
        references = self.extractor_for(entity).extract_dependents(comment.body if comment else "")
        logger.info(f"Analyzing {len(references)} dependents", entity=entity.reference.key)

        dependents = []
        for dependent in self._fetch_open(entity, references, "dependent", unverifiable):
            if not self._declares(dependent, entity):
                logger.info(
                    "Dropping dependent that no longer declares the entity",
                    dependent=dependent.reference.key,
                    entity=entity.reference.key,
                )
                continue
            dependents.append(dependent)
        return dependents

    def _fetch_open(
        self,
        entity: Entity,
        references: list[EntityReference],
        kind: str,
        unverifiable: list[EntityReference] | None,
    ) -> list[Entity]:
        found: list[Entity] = []
        for reference in references:
            try:
                related = self.tracker.get_entity(reference)
            except FetchFailed as e:
                logger.warning(
                    f"Failed to fetch {kind}. You'll need to verify it manually.",
                    reference=reference.key,
                    error=str(e.cause or e),
                )
                if unverifiable is not None:
                    unverifiable.append(reference)
                continue

            if related.reference.same_as(entity.reference):
                logger.warning(f"Skipping {kind} that matches the current entity", reference=reference.key)
                self.warnings.append(f"Skipping {kind} {reference.key} because it is {entity.reference.key} itself.")
                continue
            if any(existing.reference.same_as(related.reference) for existing in found):
                continue

            logger.debug(f"{kind.capitalize()} is {related.state}", reference=reference.key)
            if related.is_open:
                found.append(related)
        return found

    def _declares(self, dependent: Entity, entity: Entity) -> bool:
        declared = self.extractor_for(dependent).extract_references(dependent.body)
        return any(reference.same_as(entity.reference) for reference in declared)

    def _update_related(
        self,
        entity: Entity,
        result: EvaluationResult,
        seed_dependent: Entity | None = None,
    ) -> None:
        """Resolve and reconcile one related entity; failures are recorded, not raised."""
        try:
            session = ReconciliationSession(self.tracker, entity, self.settings)
            dependencies, dependents = self.resolve(entity, session)

            if (
                seed_dependent is not None
                and seed_dependent.is_open
                and not any(d.reference.same_as(seed_dependent.reference) for d in dependents)
            ):
                dependents = [*dependents, seed_dependent]

            session.reconcile(dependencies, dependents)
        except CheckerError as e:
            logger.warning("Skipping update of related entity", reference=entity.reference.key, error=str(e))
            result.failed_updates.append(UpdateFailure(entity.reference, e))
