"""Unit tests for changelog sections and documents."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from k_releaser.config.models import ChangelogConfig
from k_releaser.core.changelog import (
    CHANGELOG_HEADER,
    ChangelogDocument,
    ChangelogEntry,
    ChangelogSection,
    MarkdownRenderer,
    TemplateRenderer,
    build_section,
    get_renderer,
)
from k_releaser.core.commits import classify
from k_releaser.core.version import Version
from k_releaser.exceptions import ChangelogError, MalformedChangelogError

EXISTING = """\
# Changelog

All notable changes to this project will be documented in this file.

## [Unreleased]

## [1.1.0] - 2024-02-01

### Features

- something older

## [1.0.0] - 2024-01-01

### Bug Fixes

- the first fix
"""


class TestBuildSection:
    """Tests for build_section()."""

    def test_groups_by_type(self):
        """Commits are routed to their category labels."""
        commits = [classify("fix: null pointer"), classify("feat: add export flag")]
        section = build_section(Version(1, 3, 0), date(2024, 5, 1), commits)

        assert list(section.groups) == ["Features", "Bug Fixes"]
        assert [e.description for e in section.groups["Features"]] == ["add export flag"]
        assert [e.description for e in section.groups["Bug Fixes"]] == ["null pointer"]

    def test_breaking_listed_twice(self):
        """Breaking commits appear in Breaking Changes and in their own group."""
        section = build_section(Version(2, 0, 0), None, [classify("feat!: remove old API")])

        assert list(section.groups) == ["Breaking Changes", "Features"]
        assert section.groups["Breaking Changes"][0].description == "remove old API"
        assert section.groups["Features"][0].is_breaking

    def test_breaking_hidden_type_only_in_breaking_group(self):
        """Breaking commits of hidden types are still surfaced."""
        section = build_section(Version(2, 0, 0), None, [classify("chore!: drop py3.10")])

        assert list(section.groups) == ["Breaking Changes"]

    def test_breaking_revert_follows_duplication_rule(self):
        """A breaking revert is listed under Breaking Changes and Reverts."""
        section = build_section(Version(2, 0, 0), None, [classify("revert!: undo cache")])

        assert list(section.groups) == ["Breaking Changes", "Reverts"]

    def test_hidden_types_dropped(self):
        """Types missing from the groups mapping are left out."""
        commits = [classify("chore: deps"), classify("ci: cache"), classify("Random")]
        section = build_section(Version(1, 0, 1), None, commits)

        assert section.is_empty

    def test_custom_groups_and_order(self):
        """Group labels and order come from the configuration."""
        config = ChangelogConfig(groups={"fix": "Fixed", "feat": "Added", "other": "Other"})
        commits = [classify("feat: a"), classify("fix: b"), classify("misc text")]
        section = build_section(Version(1, 0, 0), None, commits, config)

        assert list(section.groups) == ["Fixed", "Added", "Other"]

    def test_shared_label_keeps_commit_order(self):
        """Types sharing a label keep the supplied commit order."""
        config = ChangelogConfig(groups={"feat": "Changes", "fix": "Changes"})
        commits = [classify("fix: one"), classify("feat: two"), classify("fix: three")]
        section = build_section(Version(1, 0, 0), None, commits, config)

        assert [e.description for e in section.groups["Changes"]] == ["one", "two", "three"]

    def test_entries_keep_input_order(self):
        """Entries render in the order commits were supplied."""
        commits = [classify("feat: first"), classify("feat: second"), classify("feat: third")]
        section = build_section(Version(1, 0, 0), None, commits)

        assert [e.description for e in section.entries] == ["first", "second", "third"]

    def test_unreleased_section(self):
        """The version can be the Unreleased placeholder."""
        section = build_section("Unreleased", None, [classify("feat: x")])
        assert section.title == "[Unreleased]"


class TestMarkdownRenderer:
    """Tests for the default renderer."""

    def test_render_section(self):
        """Render headings, groups and entries in Keep a Changelog layout."""
        section = ChangelogSection(
            version=Version(1, 3, 0),
            release_date=date(2024, 5, 1),
            groups={
                "Features": [ChangelogEntry("add export flag", scope="cli", sha="1a2b3c4d5e")],
                "Bug Fixes": [ChangelogEntry("null pointer")],
            },
        )

        assert MarkdownRenderer()(section) == (
            "## [1.3.0] - 2024-05-01\n"
            "\n"
            "### Features\n"
            "\n"
            "- **cli:** add export flag (1a2b3c4)\n"
            "\n"
            "### Bug Fixes\n"
            "\n"
            "- null pointer\n"
        )

    def test_heading_without_date(self):
        """No date means no date in the heading."""
        section = ChangelogSection(version=Version(0, 1, 0), groups={"Features": []})
        assert MarkdownRenderer()(section).startswith("## [0.1.0]\n")

    def test_commit_link(self):
        """References are linked when a commit_link template is set."""
        config = ChangelogConfig(commit_link="https://example.com/commit/{sha}")
        line = MarkdownRenderer(config).render_entry(ChangelogEntry("x", sha="abcdef0123"))

        assert line == "- x ([abcdef0](https://example.com/commit/abcdef0123))"

    def test_bad_commit_link(self):
        """Unknown commit_link placeholders raise ChangelogError."""
        config = ChangelogConfig(commit_link="https://example.com/commit/{commit}")
        with pytest.raises(ChangelogError, match="commit_link"):
            MarkdownRenderer(config).render_entry(ChangelogEntry("x", sha="abcdef0123"))

    def test_scope_and_sha_can_be_disabled(self):
        """include_scope and include_sha switch the slots off."""
        config = ChangelogConfig(include_scope=False, include_sha=False)
        line = MarkdownRenderer(config).render_entry(ChangelogEntry("x", scope="s", sha="abc"))

        assert line == "- x"

    def test_custom_entry_template(self):
        """The entry template controls the slot layout."""
        config = ChangelogConfig(entry_template="* {description}{reference} {scope}")
        line = MarkdownRenderer(config).render_entry(ChangelogEntry("x", scope="s", sha="abc"))

        assert line == "* x (abc) **s:** "

    def test_bad_entry_template(self):
        """Unknown template slots raise ChangelogError."""
        config = ChangelogConfig(entry_template="- {author}")
        with pytest.raises(ChangelogError):
            MarkdownRenderer(config).render_entry(ChangelogEntry("x"))

    def test_deterministic(self):
        """Same inputs render the same text."""
        commits = [classify("feat(a): x"), classify("fix: y"), classify("feat!: z")]
        first = MarkdownRenderer()(build_section(Version(1, 0, 0), date(2024, 1, 1), commits))
        second = MarkdownRenderer()(build_section(Version(1, 0, 0), date(2024, 1, 1), commits))

        assert first == second


class TestTemplateRenderer:
    """Tests for Jinja2 body templates."""

    def test_render_template(self):
        """Templates receive version, date and groups."""
        template = (
            "# {{ version }} ({{ date }})\n"
            "{% for label, entries in groups %}\n"
            "{{ label }}: {{ entries | map(attribute='description') | join(', ') }}\n"
            "{% endfor %}"
        )
        section = build_section(
            Version(1, 0, 0),
            date(2024, 1, 2),
            [classify("feat: a"), classify("feat: b"), classify("fix: c")],
        )

        assert TemplateRenderer(template)(section) == (
            "# 1.0.0 (2024-01-02)\nFeatures: a, b\nBug Fixes: c\n"
        )

    def test_invalid_template_syntax(self):
        """Syntax errors are reported as ChangelogError."""
        with pytest.raises(ChangelogError):
            TemplateRenderer("{% for x in %}")

    def test_undefined_variable(self):
        """Unknown variables fail loudly."""
        renderer = TemplateRenderer("{{ nope }}")
        with pytest.raises(ChangelogError):
            renderer(ChangelogSection(version=Version(1, 0, 0)))

    def test_get_renderer_uses_body(self):
        """A configured body selects the template renderer."""
        assert isinstance(get_renderer(ChangelogConfig(body="{{ version }}")), TemplateRenderer)
        assert isinstance(get_renderer(ChangelogConfig()), MarkdownRenderer)


class TestChangelogDocumentParse:
    """Tests for ChangelogDocument.parse()."""

    def test_parse_sections(self):
        """Header and sections are split at version headings."""
        doc = ChangelogDocument.parse(EXISTING)

        assert doc.header.endswith("## [Unreleased]\n\n")
        assert len(doc.sections) == 2
        assert doc.sections[0].startswith("## [1.1.0] - 2024-02-01")
        assert doc.sections[1].startswith("## [1.0.0] - 2024-01-01")
        assert doc.versions() == [Version(1, 1, 0), Version(1, 0, 0)]
        assert doc.latest_version() == Version(1, 1, 0)

    def test_round_trip(self):
        """An unchanged document renders to the original text."""
        assert ChangelogDocument.parse(EXISTING).to_text() == EXISTING

    def test_empty_text_gets_default_header(self):
        """A missing or empty changelog starts from the default header."""
        doc = ChangelogDocument.parse("  \n")

        assert doc.header == CHANGELOG_HEADER
        assert doc.sections == ()
        assert doc.latest_version() is None

    def test_header_only(self):
        """A changelog without releases is all header."""
        doc = ChangelogDocument.parse("# Changelog\n\nNothing yet.\n")

        assert doc.sections == ()
        assert doc.header == "# Changelog\n\nNothing yet.\n"

    def test_unversioned_headings_stay_in_section(self):
        """Only version headings start a new section."""
        text = "# Changelog\n\n## 2.0.0\n\n## Notes\n\ntext\n\n## 1.0.0\n\n- a\n"
        doc = ChangelogDocument.parse(text)

        assert doc.versions() == [Version(2, 0, 0), Version(1, 0, 0)]
        assert "## Notes" in doc.sections[0]

    def test_missing_title_is_malformed(self):
        """A changelog that does not start with a title is rejected."""
        with pytest.raises(MalformedChangelogError) as exc_info:
            ChangelogDocument.parse("## [1.0.0]\n\n- a\n", Path("docs/CHANGELOG.md"))

        assert exc_info.value.document == str(Path("docs/CHANGELOG.md"))
        assert "title" in exc_info.value.reason
        assert "docs" in str(exc_info.value)

    def test_section_text(self):
        """section_text() returns a version's original block."""
        doc = ChangelogDocument.parse(EXISTING)

        assert doc.section_text(Version(1, 0, 0)) == (
            "## [1.0.0] - 2024-01-01\n\n### Bug Fixes\n\n- the first fix\n"
        )
        assert doc.section_text(Version(9, 9, 9)) is None


class TestChangelogDocumentInsert:
    """Tests for ChangelogDocument.insert_section()."""

    NEW = "## [1.2.0] - 2024-03-01\n\n### Features\n\n- shiny\n"

    def test_insert_becomes_first_section(self):
        """The new section directly follows the header."""
        doc = ChangelogDocument.parse(EXISTING)
        updated = doc.insert_section(self.NEW)

        assert updated.sections[0].strip() == self.NEW.strip()
        assert updated.sections[1:] == doc.sections
        assert updated.latest_version() == Version(1, 2, 0)

    def test_existing_text_unchanged(self):
        """Older sections survive byte for byte."""
        text = ChangelogDocument.parse(EXISTING).insert_section(self.NEW).to_text()

        assert text.startswith(EXISTING.split("## [1.1.0]")[0])
        assert text.endswith("## [1.1.0]" + EXISTING.split("## [1.1.0]")[1])

    def test_inserted_document_reparses(self):
        """Re-parsing the result finds the new section first."""
        text = ChangelogDocument.parse(EXISTING).insert_section(self.NEW).to_text()
        reparsed = ChangelogDocument.parse(text)

        assert reparsed.versions() == [Version(1, 2, 0), Version(1, 1, 0), Version(1, 0, 0)]
        assert reparsed.sections[0] == self.NEW + "\n"

    def test_insert_into_empty(self):
        """Inserting into an empty changelog produces header plus section."""
        text = ChangelogDocument.parse("").insert_section(self.NEW).to_text()

        assert text == CHANGELOG_HEADER + "\n" + self.NEW

    def test_insert_does_not_mutate(self):
        """Documents are values; the original is unchanged."""
        doc = ChangelogDocument.parse(EXISTING)
        doc.insert_section(self.NEW)

        assert doc.to_text() == EXISTING
        assert not doc.has_version(Version(1, 2, 0))
