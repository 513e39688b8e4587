"""Changelog sections and documents.

A release's commits are grouped into a :class:`ChangelogSection`, turned
into markdown by a renderer, and inserted into a
:class:`ChangelogDocument` right below its header. Existing sections are
kept byte for byte.

The default layout follows Keep a Changelog::

    ## [1.3.0] - 2024-05-01

    ### Features

    - **cli:** add export flag (1a2b3c4)

A Jinja2 ``body`` template can replace the default renderer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Protocol

import jinja2

from k_releaser.config.models import ChangelogConfig
from k_releaser.core.version import Version
from k_releaser.exceptions import ChangelogError, InvalidVersionError, MalformedChangelogError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date
    from pathlib import Path

    from k_releaser.core.commits import ParsedCommit

UNRELEASED = "Unreleased"

CHANGELOG_HEADER = """\
# Changelog

All notable changes to this project will be documented in this file.

The format is based on [Keep a Changelog](https://keepachangelog.com/en/1.0.0/),
and this project adheres to [Semantic Versioning](https://semver.org/spec/v2.0.0.html).

## [Unreleased]
"""

# Matches "## [1.2.3] - 2024-01-01", "## 1.2.3" and "## [Unreleased]".
SECTION_HEADING = re.compile(r"^##[ \t]+\[?(?P<version>[^\]\s]+)\]?.*$", re.MULTILINE)


@dataclass(frozen=True)
class ChangelogEntry:
    """One line of a changelog section."""

    description: str
    scope: str | None = None
    sha: str | None = None
    is_breaking: bool = False

    @classmethod
    def from_commit(cls, pc: ParsedCommit) -> ChangelogEntry:
        return cls(
            description=pc.description,
            scope=pc.scope,
            sha=pc.sha,
            is_breaking=pc.is_breaking,
        )


@dataclass(frozen=True)
class ChangelogSection:
    """The changelog entries of a single release.

    Attributes:
        version: Released version, or ``"Unreleased"``
        release_date: Release date, omitted from the heading when ``None``
        groups: Category label to entries, in display order
    """

    version: Version | str
    release_date: date | None = None
    groups: dict[str, list[ChangelogEntry]] = field(default_factory=dict)

    @property
    def entries(self) -> list[ChangelogEntry]:
        return [entry for entries in self.groups.values() for entry in entries]

    @property
    def is_empty(self) -> bool:
        return not self.groups

    @property
    def title(self) -> str:
        title = f"[{self.version}]"
        if self.release_date is not None:
            title += f" - {self.release_date.isoformat()}"
        return title


def build_section(
    version: Version | str,
    release_date: date | None,
    commits: Iterable[ParsedCommit],
    config: ChangelogConfig | None = None,
) -> ChangelogSection:
    """Group commits into a changelog section.

    Breaking commits are listed under ``config.breaking_label`` and also
    under their own category. Non-breaking commits go to the label that
    ``config.groups`` assigns to their type; unlisted types are left
    out. Entries keep the order of ``commits`` and empty groups are
    dropped.

    Args:
        version: Version the section describes
        release_date: Date shown in the heading
        commits: Parsed commits, already in display order
        config: Changelog configuration

    Returns:
        The section
    """
    config = config or ChangelogConfig()

    breaking: list[ChangelogEntry] = []
    by_label: dict[str, list[ChangelogEntry]] = {
        label: [] for label in dict.fromkeys(config.groups.values())
    }
    for pc in commits:
        entry = ChangelogEntry.from_commit(pc)
        if pc.is_breaking:
            breaking.append(entry)
        label = config.groups.get(pc.commit_type)
        if label is not None:
            by_label[label].append(entry)

    groups: dict[str, list[ChangelogEntry]] = {}
    if breaking:
        groups[config.breaking_label] = breaking
    for label, entries in by_label.items():
        if entries:
            groups.setdefault(label, []).extend(entries)

    return ChangelogSection(version=version, release_date=release_date, groups=groups)


class SectionRenderer(Protocol):
    """Turns a section into changelog text."""

    def __call__(self, section: ChangelogSection) -> str: ...


class MarkdownRenderer:
    """Keep a Changelog markdown renderer.

    Each entry is produced from ``config.entry_template``, which has
    ``{scope}``, ``{description}`` and ``{reference}`` slots.
    """

    def __init__(self, config: ChangelogConfig | None = None) -> None:
        self.config = config or ChangelogConfig()

    def render_entry(self, entry: ChangelogEntry) -> str:
        scope = ""
        if self.config.include_scope and entry.scope:
            scope = f"**{entry.scope}:** "

        reference = ""
        if self.config.include_sha and entry.sha:
            ref = entry.sha[:7]
            if self.config.commit_link:
                try:
                    link = self.config.commit_link.format(sha=entry.sha)
                except (KeyError, IndexError, ValueError) as e:
                    raise ChangelogError(
                        f"Invalid commit_link {self.config.commit_link!r}, "
                        "the only placeholder is {sha}"
                    ) from e
                ref = f"[{ref}]({link})"
            reference = f" ({ref})"

        try:
            return self.config.entry_template.format(
                scope=scope,
                description=entry.description,
                reference=reference,
            )
        except (KeyError, IndexError, ValueError) as e:
            raise ChangelogError(f"Invalid entry_template {self.config.entry_template!r}") from e

    def __call__(self, section: ChangelogSection) -> str:
        lines = [f"## {section.title}", ""]
        for label, entries in section.groups.items():
            lines.append(f"### {label}")
            lines.append("")
            lines.extend(self.render_entry(entry) for entry in entries)
            lines.append("")
        return "\n".join(lines).rstrip("\n") + "\n"


class TemplateRenderer:
    """Render sections with a user supplied Jinja2 template.

    The template receives ``version``, ``date`` (ISO string or ``None``),
    ``groups`` (list of ``(label, entries)`` pairs) and ``entries``.
    """

    def __init__(self, template: str) -> None:
        env = jinja2.Environment(
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
        )
        try:
            self.template = env.from_string(template)
        except jinja2.TemplateSyntaxError as e:
            raise ChangelogError(f"Invalid changelog body template: {e}") from e

    def __call__(self, section: ChangelogSection) -> str:
        try:
            rendered = self.template.render(
                version=str(section.version),
                date=section.release_date.isoformat() if section.release_date else None,
                groups=list(section.groups.items()),
                entries=section.entries,
            )
        except jinja2.TemplateError as e:
            raise ChangelogError(f"Failed to render changelog body template: {e}") from e
        return rendered.strip("\n") + "\n"


def get_renderer(config: ChangelogConfig | None = None) -> SectionRenderer:
    """Return the renderer selected by the configuration."""
    config = config or ChangelogConfig()
    if config.body:
        return TemplateRenderer(config.body)
    return MarkdownRenderer(config)


def _heading_version(heading: re.Match[str]) -> Version | None:
    try:
        return Version.parse(heading.group("version"))
    except InvalidVersionError:
        return None


@dataclass(frozen=True)
class ChangelogDocument:
    """A changelog split into a free-text header and release sections.

    ``sections`` hold the original text of every released version,
    newest first. The header is everything before the first version
    heading, so an ``## [Unreleased]`` heading stays in it.
    """

    header: str
    sections: tuple[str, ...] = ()
    path: str | None = None

    @classmethod
    def parse(cls, text: str, path: str | Path | None = None) -> ChangelogDocument:
        """Split changelog text into header and sections.

        Args:
            text: Current changelog content; empty text yields a new document
            path: Where the text came from, used in error messages

        Returns:
            The parsed document

        Raises:
            MalformedChangelogError: If the text does not start with a ``# `` title
        """
        source = str(path) if path is not None else None
        if not text.strip():
            return cls(header=CHANGELOG_HEADER, path=source)

        first_line = next(line for line in text.splitlines() if line.strip())
        if not first_line.startswith("# "):
            raise MalformedChangelogError(
                source,
                f"expected a '# ' title heading before any release, found {first_line.strip()!r}",
            )

        starts = [
            m.start() for m in SECTION_HEADING.finditer(text) if _heading_version(m) is not None
        ]
        if not starts:
            return cls(header=text, path=source)

        bounds = [*starts, len(text)]
        sections = tuple(text[start:end] for start, end in zip(bounds, bounds[1:], strict=False))
        return cls(header=text[: starts[0]], sections=sections, path=source)

    def versions(self) -> list[Version]:
        """Versions of the existing sections, newest first."""
        versions = []
        for section in self.sections:
            match = SECTION_HEADING.match(section)
            version = _heading_version(match) if match else None
            if version is not None:
                versions.append(version)
        return versions

    def latest_version(self) -> Version | None:
        versions = self.versions()
        return versions[0] if versions else None

    def has_version(self, version: Version) -> bool:
        return version in self.versions()

    def section_text(self, version: Version) -> str | None:
        """Original text of the section for ``version``, if present."""
        for section, section_version in zip(self.sections, self.versions(), strict=False):
            if section_version == version:
                return section
        return None

    def insert_section(self, section_text: str) -> ChangelogDocument:
        """Return a new document with ``section_text`` as its newest section."""
        block = section_text.strip("\n") + "\n"
        if self.sections:
            block += "\n"
        header = self.header.rstrip("\n") + "\n\n"
        return replace(self, header=header, sections=(block, *self.sections))

    def to_text(self) -> str:
        return self.header + "".join(self.sections)
