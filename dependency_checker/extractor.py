"""Extraction of issue and pull request references from free text.

Dependencies are declared in blocks that start with a key phrase followed by a
colon (``Depends on:`` by default) and run until the next blank line::

    Depends on: #12, octo/tools#7
    - https://github.com/octo/api/pull/31
    - [the migration](octo/api/issues/40)

Inside a block the following syntaxes are recognized:

- markdown links ``[text](target)``, whose target is resolved as one of the below,
- intra-repo shorthands ``#123``,
- cross-repo shorthands ``owner/repo#123``,
- path shorthands ``owner/repo/issues/123`` and ``owner/repo/pull/123``,
- full URLs ``https://<server host>/owner/repo/pull/123``.

Dependents are never parsed from human text. They are read back from the
"Blocked Dependents Found" section of the checker's own status comment.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import NamedTuple

import structlog

from dependency_checker.models import EntityReference, ExecutionContext

logger = structlog.get_logger()

ISSUE_TYPES = ("issues", "pull")
DEFAULT_PHRASES = ("depends on", "blocked by")
DEPENDENTS_HEADING = "Blocked Dependents Found"

# A reference starts at line start, after whitespace or after one of ( [ , ; :
_LEADING = r"(?<![^\s(\[,;:])"
_NAME = r"[\w.-]+"


class Syntax(NamedTuple):
    """A reference syntax: its name and the pattern recognizing it."""

    name: str
    pattern: re.Pattern[str]


@dataclass(frozen=True)
class ReferencePatterns:
    """Compiled patterns for one set of key phrases and one server host."""

    key_phrase: re.Pattern[str]
    markdown: re.Pattern[str]
    syntaxes: tuple[Syntax, ...]
    dependents_section: re.Pattern[str]
    dependents_entry: re.Pattern[str]
    entry_url: re.Pattern[str]


def escape_phrases(phrases: tuple[str, ...]) -> str:
    """Join key phrases into a regex alternation, escaping everything but the separators."""
    return "|".join(re.escape(phrase) for phrase in phrases if phrase)


@lru_cache(maxsize=None)
def compile_patterns(phrases: tuple[str, ...], host: str) -> ReferencePatterns:
    """Compile the extraction patterns once per key-phrase set and host."""
    logger.debug("Compiling reference patterns", phrases=phrases, host=host)

    issue_types = "|".join(ISSUE_TYPES)
    url = rf"https?://{re.escape(host)}/(?P<owner>{_NAME})/(?P<repo>{_NAME})/(?:{issue_types})/(?P<number>\d+)\b"

    syntaxes = (
        Syntax("intra-repo", re.compile(rf"{_LEADING}#(?P<number>\d+)\b")),
        Syntax("cross-repo", re.compile(rf"{_LEADING}(?P<owner>{_NAME})/(?P<repo>{_NAME})#(?P<number>\d+)\b")),
        Syntax(
            "path",
            re.compile(rf"{_LEADING}(?P<owner>{_NAME})/(?P<repo>{_NAME})/(?:{issue_types})/(?P<number>\d+)\b"),
        ),
        Syntax("url", re.compile(rf"{_LEADING}{url}")),
    )

    return ReferencePatterns(
        key_phrase=re.compile(rf"^(?:{escape_phrases(phrases)}):", re.IGNORECASE),
        markdown=re.compile(r"\[[^\]\n]*\]\((?P<target>[^()\s]*)\)"),
        syntaxes=syntaxes,
        dependents_section=re.compile(
            rf"^##[^\n]*{re.escape(DEPENDENTS_HEADING)}[^\n]*\n(?P<section>.*?)(?=^---[ \t]*$|^## |\Z)",
            re.MULTILINE | re.DOTALL,
        ),
        dependents_entry=re.compile(
            r"^- \[(?:PR|Issue) #(?P<number>\d+)\]\((?P<url>[^)\s]*)\)",
            re.MULTILINE,
        ),
        entry_url=re.compile(url),
    )


class ReferenceExtractor:
    """Extracts entity references relative to one execution context.

    The context's owner and repo resolve intra-repo shorthands, and its
    subject is excluded from every result. Warnings meant for the person
    who wrote the text are appended to ``warnings``.
    """

    def __init__(
        self,
        context: ExecutionContext,
        phrases: list[str] | tuple[str, ...] = DEFAULT_PHRASES,
        warnings: list[str] | None = None,
    ) -> None:
        self.context = context
        self.patterns = compile_patterns(tuple(phrases), context.host)
        self.warnings = warnings if warnings is not None else []

    def declaration_lines(self, text: str | None) -> list[str]:
        """Return the trimmed lines that belong to a declaration block."""
        if not text:
            return []

        lines: list[str] = []
        inside_block = False
        for line in text.splitlines():
            line = line.strip()
            if not line:
                inside_block = False
                continue
            if self.patterns.key_phrase.match(line):
                inside_block = True
            if inside_block:
                lines.append(line)

        logger.debug("Declaration block extracted", lines=len(lines))
        return lines

    def extract_references(self, text: str | None) -> list[EntityReference]:
        """Extract the unique references declared in ``text``, in order of appearance."""
        references: list[EntityReference] = []
        for line in self.declaration_lines(text):
            references.extend(self._scan_line(line))

        unique = self._unique(references)
        logger.debug("Extracted dependency references", count=len(unique))
        return self._without_subject(unique, "dependency")

    def extract_dependents(self, comment_body: str | None) -> list[EntityReference]:
        """Extract the dependents listed in a status comment."""
        if not comment_body:
            return []

        section = self.patterns.dependents_section.search(comment_body)
        if section is None:
            logger.debug("No dependents section found")
            return []

        references = []
        for entry in self.patterns.dependents_entry.finditer(section.group("section")):
            number = int(entry.group("number"))
            url = self.patterns.entry_url.match(entry.group("url"))
            if url and int(url.group("number")) == number:
                references.append(EntityReference(url.group("owner"), url.group("repo"), number))
            else:
                references.append(EntityReference(self.context.owner, self.context.repo, number))

        unique = self._unique(references)
        logger.debug("Extracted dependent references", count=len(unique))
        return self._without_subject(unique, "dependent")

    def resolve(self, target: str) -> EntityReference | None:
        """Resolve a single reference written in any non-markdown syntax."""
        for syntax in self.patterns.syntaxes:
            match = syntax.pattern.match(target)
            if match:
                return self._to_reference(match)
        return None

    def _scan_line(self, line: str) -> list[EntityReference]:
        found: list[tuple[int, EntityReference]] = []

        for match in self.patterns.markdown.finditer(line):
            target = match.group("target")
            reference = self.resolve(target)
            if reference is None:
                logger.warning("Skipping invalid dependency link target", target=target)
                self.warnings.append(f"Skipping invalid dependency link target '{target}'.")
                continue
            found.append((match.start(), reference))

        # Blank out markdown links so their targets are not matched a second time.
        remaining = self.patterns.markdown.sub(lambda m: " " * len(m.group(0)), line)
        for syntax in self.patterns.syntaxes:
            for match in syntax.pattern.finditer(remaining):
                found.append((match.start(), self._to_reference(match)))

        found.sort(key=lambda item: item[0])
        return [reference for _, reference in found]

    def _to_reference(self, match: re.Match[str]) -> EntityReference:
        groups = match.groupdict()
        return EntityReference(
            owner=groups.get("owner") or self.context.owner,
            repo=groups.get("repo") or self.context.repo,
            number=int(groups["number"]),
        )

    @staticmethod
    def _unique(references: list[EntityReference]) -> list[EntityReference]:
        unique: dict[str, EntityReference] = {}
        for reference in references:
            unique.setdefault(reference.key, reference)
        return list(unique.values())

    def _without_subject(self, references: list[EntityReference], kind: str) -> list[EntityReference]:
        subject = self.context.subject_reference
        kept = []
        for reference in references:
            if reference.same_as(subject):
                logger.warning(f"Skipping {kind} reference that matches the current entity", reference=subject.key)
                self.warnings.append(f"Skipping {kind} {subject.key} because it references the current entity.")
                continue
            kept.append(reference)
        return kept


def extract_references(
    text: str | None,
    context: ExecutionContext,
    phrases: list[str] | tuple[str, ...] = DEFAULT_PHRASES,
) -> list[EntityReference]:
    """Extract the dependency references declared in ``text``."""
    return ReferenceExtractor(context, phrases).extract_references(text)
