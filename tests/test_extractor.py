"""Tests for reference extraction."""

import pytest
from structlog.testing import capture_logs

from dependency_checker.extractor import ReferenceExtractor, compile_patterns, escape_phrases, extract_references
from dependency_checker.models import EntityReference, ExecutionContext


def ref(number: int, owner: str = "owner", repo: str = "repo") -> EntityReference:
    return EntityReference(owner, repo, number)


@pytest.fixture
def extractor(context: ExecutionContext) -> ReferenceExtractor:
    return ReferenceExtractor(context)


def test_empty_input(extractor: ReferenceExtractor) -> None:
    """Test that empty or missing text yields no references."""
    assert extractor.extract_references("") == []
    assert extractor.extract_references(None) == []


def test_intra_repo_single(extractor: ReferenceExtractor) -> None:
    """Test a single intra-repo shorthand."""
    assert extractor.extract_references("Depends on: #123") == [ref(123)]


def test_intra_repo_multiple(extractor: ReferenceExtractor) -> None:
    """Test that only properly bounded intra-repo shorthands match."""
    body = "Depends on: #123#9123 #456 #789#INCLUDED #9456EXCLUDED"
    assert extractor.extract_references(body) == [ref(123), ref(456), ref(789)]


def test_word_boundary(extractor: ReferenceExtractor) -> None:
    """Test that a numeric reference followed by letters is rejected."""
    assert extractor.extract_references("Depends on: #123EXCLUDED") == []
    assert extractor.extract_references("Depends on: #123 #456") == [ref(123), ref(456)]


def test_cross_repo(extractor: ReferenceExtractor) -> None:
    """Test cross-repo shorthands, including glued and suffixed ones."""
    assert extractor.extract_references("Depends on: octo/tools#7") == [ref(7, "octo", "tools")]

    body = "Depends on: owner/repo#9123owner/repo#9456 owner/repo#123 owner/repo#456#INCLUDED #9789EXCLUDED"
    assert extractor.extract_references(body) == [ref(123), ref(456)]


def test_cross_repo_does_not_double_count(extractor: ReferenceExtractor) -> None:
    """Test that '#123' inside 'owner/repo#123' is not also read as an intra-repo shorthand."""
    assert extractor.extract_references("Depends on: other/lib#123") == [ref(123, "other", "lib")]


def test_path_shorthand(extractor: ReferenceExtractor) -> None:
    """Test path shorthands for issues and pull requests."""
    body = (
        "Depends on: owner/repo/pull/9123owner/repo/pull/9456 owner/repo/pull/123 "
        "owner/repo/pull/9789EXCLUDED owner/repo/issues/456"
    )
    assert extractor.extract_references(body) == [ref(123), ref(456)]


def test_full_url(extractor: ReferenceExtractor) -> None:
    """Test full URLs on the configured server."""
    body = (
        "Depends on: https://github.com/owner/repo/pull/9123https://github.com/owner/repo/pull/9456 "
        "https://github.com/org/repo/pull/123 https://github.com/owner/repo/pull/9789EXCLUDED "
        "https://github.com/owner/repo/issues/456"
    )
    assert extractor.extract_references(body) == [ref(123, "org"), ref(456)]


def test_url_on_other_host_is_ignored(extractor: ReferenceExtractor) -> None:
    """Test that URLs of another server are not references."""
    assert extractor.extract_references("Depends on: https://gitlab.com/owner/repo/issues/5") == []


def test_enterprise_server() -> None:
    """Test that full URLs follow the configured server origin."""
    context = ExecutionContext(owner="owner", repo="repo", subject_number=1, server_url="https://github.example.com")
    body = "Depends on: https://github.example.com/org/repo/pull/42 https://github.com/org/repo/pull/43"
    assert extract_references(body, context) == [ref(42, "org")]


def test_markdown_links(extractor: ReferenceExtractor) -> None:
    """Test markdown links with and without text between them."""
    body = "Depends on: [this](https://github.com/owner/repo/pull/123)&[that](https://github.com/owner/repo/pull/456)"
    assert extractor.extract_references(body) == [ref(123), ref(456)]

    body = "Depends on: [this](https://github.com/owner/repo/pull/123)[that](https://github.com/owner/repo/pull/456)"
    assert extractor.extract_references(body) == [ref(123), ref(456)]


def test_markdown_link_text_is_not_scanned(extractor: ReferenceExtractor) -> None:
    """Test that references in a link's text do not count, only its target."""
    body = "Depends on: [see #5](https://github.com/owner/repo/pull/6)"
    assert extractor.extract_references(body) == [ref(6)]


def test_invalid_markdown_target(extractor: ReferenceExtractor) -> None:
    """Test that unresolvable link targets are skipped with a warning."""
    with capture_logs() as logs:
        assert extractor.extract_references("Depends on: [docs](https://example.com/docs) #4") == [ref(4)]

    assert any(log["log_level"] == "warning" and log.get("target") == "https://example.com/docs" for log in logs)
    assert extractor.warnings == ["Skipping invalid dependency link target 'https://example.com/docs'."]


@pytest.mark.parametrize(
    "text",
    [
        "owner/repo#123",
        "owner/repo/pull/123",
        "https://github.com/owner/repo/pull/123",
        "[text](https://github.com/owner/repo/pull/123)",
    ],
)
def test_format_equivalence(text: str) -> None:
    """Test that every syntax resolves to the same reference."""
    context = ExecutionContext(owner="someone", repo="else", subject_number=1)
    assert extract_references(f"Depends on: {text}", context) == [ref(123)]


def test_bare_shorthand_uses_context_repository() -> None:
    """Test that '#123' belongs to the context's repository."""
    context = ExecutionContext(owner="someone", repo="else", subject_number=1)
    assert extract_references("Depends on: #123", context) == [ref(123, "someone", "else")]


def test_combined_formats(extractor: ReferenceExtractor) -> None:
    """Test a list mixing every syntax."""
    body = """
    Depends on:
    - #123
    - owner/repo#456
    - org/repo/pull/789
    - https://github.com/owner/repo/issues/101112
    - [this](#1231)
    - [this](owner/repo#4561)
    - [this](org/repo/pull/7891)
    - [this](https://github.com/owner/repo/issues/1011121)
    """
    assert extractor.extract_references(body) == [
        ref(123),
        ref(456),
        ref(789, "org"),
        ref(101112),
        ref(1231),
        ref(4561),
        ref(7891, "org"),
        ref(1011121),
    ]


def test_block_termination(extractor: ReferenceExtractor) -> None:
    """Test that a blank line ends the declaration block."""
    assert extractor.extract_references("Depends on:\n#123\n\n#456") == [ref(123)]


def test_whitespace_only_line_ends_block(extractor: ReferenceExtractor) -> None:
    """Test that a line with only whitespace counts as blank."""
    assert extractor.extract_references("Depends on: #1\n   \t\n#2") == [ref(1)]


def test_references_outside_block_are_ignored(extractor: ReferenceExtractor) -> None:
    """Test that references before a key phrase are ignored."""
    assert extractor.extract_references("Fixes #10\nSee #11") == []


def test_multiple_blocks_are_merged(extractor: ReferenceExtractor) -> None:
    """Test that a key phrase after a blank line opens a new block."""
    body = "Depends on: #1\n\nSome prose about #2.\n\nBlocked by:\n- #3\n- #1"
    assert extractor.extract_references(body) == [ref(1), ref(3)]


def test_key_phrases_are_case_insensitive(extractor: ReferenceExtractor) -> None:
    """Test that key phrases match regardless of case and indentation."""
    body = """
        DEPENDS ON: #1
        blocked BY: #2
    """
    assert extractor.extract_references(body) == [ref(1), ref(2)]


def test_key_phrase_must_start_the_line(extractor: ReferenceExtractor) -> None:
    """Test that a key phrase in the middle of a line does not open a block."""
    assert extractor.extract_references("This depends on: #1") == []


def test_duplicates_are_removed(extractor: ReferenceExtractor) -> None:
    """Test that duplicates are removed, keeping the first occurrence."""
    body = "Depends on: #123 and also #123, owner/repo#123 and #7"
    assert extractor.extract_references(body) == [ref(123), ref(7)]


def test_self_reference_is_excluded(extractor: ReferenceExtractor) -> None:
    """Test that the subject's own reference is dropped with a warning."""
    with capture_logs() as logs:
        result = extractor.extract_references("Depends on: #123 #999 Owner/Repo#999")

    assert result == [ref(123)]
    assert any(log["log_level"] == "warning" and log.get("reference") == "owner/repo#999" for log in logs)
    assert extractor.warnings == [
        "Skipping dependency owner/repo#999 because it references the current entity.",
        "Skipping dependency owner/repo#999 because it references the current entity.",
    ]


def test_self_number_in_other_repository_is_kept(extractor: ReferenceExtractor) -> None:
    """Test that the same number in another repository is a different entity."""
    assert extractor.extract_references("Depends on: other/repo#999") == [ref(999, "other")]


def test_custom_phrases_are_escaped(context: ExecutionContext) -> None:
    """Test that regex characters in key phrases are taken literally."""
    extractor = ReferenceExtractor(context, ["needs (first)", "after"])
    assert extractor.extract_references("Needs (first): #1") == [ref(1)]
    assert extractor.extract_references("After: #2") == [ref(2)]
    assert extractor.extract_references("Needs first: #3") == []
    assert extractor.extract_references("Depends on: #4") == []


def test_escape_phrases() -> None:
    """Test that only the separators stay unescaped."""
    assert escape_phrases(("a.b", "c+")) == r"a\.b|c\+"


def test_patterns_are_memoized() -> None:
    """Test that patterns are compiled once per phrases and host."""
    assert compile_patterns(("depends on",), "github.com") is compile_patterns(("depends on",), "github.com")


class TestDependents:
    """Tests for reading dependents back from a status comment."""

    COMMENT = (
        "<!-- dependency-checker-action -->\n"
        "## ⚠️ Blocking Dependencies Found\n\n"
        "This Pull Request should not be merged until the following dependencies are resolved:\n\n"
        "- [PR #100](https://github.com/owner/repo/pull/100) – Fix critical bug 1\n\n"
        "## ⚠️ Blocked Dependents Found\n\n"
        "This Pull Request should be merged to unblock the following dependents:\n\n"
        "- [PR #200](https://github.com/owner/repo/pull/200) – Add feature 1\n"
        "- [Issue #201](https://github.com/owner/repo/issues/201) – Implement test 2\n"
        "- [Issue #7](https://github.com/octo/tools/issues/7) – Elsewhere\n\n"
        "---\n"
        "<sub>*This is an automated message.*</sub>\n"
        "- [PR #300](https://github.com/owner/repo/pull/300) – not in the section\n"
    )

    def test_no_section(self, extractor: ReferenceExtractor) -> None:
        """Test that a body without the section yields nothing."""
        assert extractor.extract_dependents("No dependents here") == []
        assert extractor.extract_dependents("") == []

    def test_entries_in_section(self, extractor: ReferenceExtractor) -> None:
        """Test that only entries inside the dependents section are read."""
        assert extractor.extract_dependents(self.COMMENT) == [ref(200), ref(201), ref(7, "octo", "tools")]

    def test_dependencies_are_not_dependents(self, extractor: ReferenceExtractor) -> None:
        """Test that the dependencies section is never read as dependents."""
        assert ref(100) not in extractor.extract_dependents(self.COMMENT)

    def test_back_reference_is_excluded(self) -> None:
        """Test that the subject itself is not its own dependent."""
        context = ExecutionContext(owner="owner", repo="repo", subject_number=200)
        assert ReferenceExtractor(context).extract_dependents(self.COMMENT) == [ref(201), ref(7, "octo", "tools")]

    def test_entry_without_recognized_url(self, extractor: ReferenceExtractor) -> None:
        """Test that entries with foreign URLs fall back to the context repository."""
        body = "## ⚠️ Blocked Dependents Found\n\n- [Issue #5](https://example.com/x/5) – Title\n"
        assert extractor.extract_dependents(body) == [ref(5)]

    def test_human_text_is_not_a_dependent(self, extractor: ReferenceExtractor) -> None:
        """Test that free-form references in the section are ignored."""
        body = "## ⚠️ Blocked Dependents Found\n\nDepends on: #5\n- #6\n"
        assert extractor.extract_dependents(body) == []
