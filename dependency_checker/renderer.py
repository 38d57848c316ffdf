"""Markdown rendering for status comments and the run summary.

The status comment body is a pure function of the subject type and the
dependency/dependent lists, so an unchanged evaluation renders a
byte-identical body that can be compared against the last posted comment.
"""

from dependency_checker.extractor import DEPENDENTS_HEADING
from dependency_checker.models import Entity, EvaluationResult

SIGNATURE = "<!-- dependency-checker-action -->"
TRAILER = (
    "---\n"
    "<sub>*This is an automated message. Please resolve the above dependencies and dependents, if any.*</sub>\n"
    "<!-- DO NOT EDIT THIS COMMENT! IT WILL BREAK THE DEPENDENCY CHECKER. -->"
)


def render_entry(entity: Entity) -> str:
    """Render one bullet entry, e.g. ``- [PR #12](url) – title``."""
    return f"- [{entity.short_type} #{entity.number}]({entity.html_url}) – {entity.title}"


def _render_dependencies(subject: Entity, dependencies: list[Entity]) -> list[str]:
    if not dependencies:
        return [
            "## ✅ All Dependencies Resolved",
            "",
            f"This {subject.type_name} has no blocking dependencies.",
        ]

    lines = [
        "## ⚠️ Blocking Dependencies Found",
        "",
        f"This {subject.type_name} should not be {subject.action_verb} until the following dependencies are resolved:",
        "",
    ]
    lines.extend(render_entry(entity) for entity in dependencies)
    return lines


def _render_dependents(subject: Entity, dependents: list[Entity]) -> list[str]:
    if not dependents:
        return [
            "## ✅ No Blocked Dependents",
            "",
            f"This {subject.type_name} is not blocking any dependent.",
        ]

    lines = [
        f"## ⚠️ {DEPENDENTS_HEADING}",
        "",
        f"This {subject.type_name} should be {subject.action_verb} to unblock the following dependents:",
        "",
    ]
    lines.extend(render_entry(entity) for entity in dependents)
    return lines


def render_status_comment(subject: Entity, dependencies: list[Entity], dependents: list[Entity]) -> str:
    """Render the full status comment body."""
    sections = [SIGNATURE]
    sections.extend(_render_dependencies(subject, dependencies))
    sections.append("")
    sections.extend(_render_dependents(subject, dependents))
    sections.append("")
    sections.append(TRAILER)
    return "\n".join(sections)


def is_status_comment(body: str | None) -> bool:
    return bool(body) and SIGNATURE in body


def render_summary(result: EvaluationResult) -> str:
    """Render the run summary written to the workflow's step summary."""
    lines = ["# Dependency Check Summary", "", "## Unresolved Dependencies", ""]

    if result.dependencies:
        lines.extend(f"- {display_key(result.subject, entity)}" for entity in result.dependencies)
        lines.append("")
        lines.append("Please resolve the above dependencies.")
    else:
        lines.append("None")

    lines.extend(["", "## Blocked Dependents", ""])
    if result.dependents:
        lines.extend(f"- {display_key(result.subject, entity)}" for entity in result.dependents)
    else:
        lines.append("None")

    if result.unverifiable:
        lines.extend(["", "## Unverifiable References", ""])
        lines.extend(f"- {reference} (verify manually)" for reference in result.unverifiable)

    if result.failed_updates:
        lines.extend(["", "## Skipped Updates", ""])
        lines.extend(f"- {failure.reference}: {failure.error}" for failure in result.failed_updates)

    return "\n".join(lines) + "\n"


def display_key(subject: Entity, entity: Entity) -> str:
    """Short form for entities of the subject's repository, full key otherwise."""
    if entity.owner == subject.owner and entity.repo == subject.repo:
        return f"#{entity.number}"
    return entity.reference.key
