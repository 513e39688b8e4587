"""Core business logic for k-releaser.

This module contains the fundamental building blocks:
- Semantic version parsing, ordering and bumping
- Conventional commit parsing
- Changelog sections and documents
- Release synthesis
"""

from __future__ import annotations

from k_releaser.core.changelog import (
    ChangelogDocument,
    ChangelogEntry,
    ChangelogSection,
    MarkdownRenderer,
    TemplateRenderer,
    build_section,
    get_renderer,
)
from k_releaser.core.commits import (
    ParsedCommit,
    calculate_bump,
    classify,
    filter_skip_release_commits,
    parse_commits,
)
from k_releaser.core.release import NoReleaseNeeded, ReleasePlan, synthesize
from k_releaser.core.version import BumpType, Version, apply_bump, parse_version

__all__ = [
    # Version
    "BumpType",
    # Changelog
    "ChangelogDocument",
    "ChangelogEntry",
    "ChangelogSection",
    "MarkdownRenderer",
    # Release
    "NoReleaseNeeded",
    # Commits
    "ParsedCommit",
    "ReleasePlan",
    "TemplateRenderer",
    "Version",
    "apply_bump",
    "build_section",
    "calculate_bump",
    "classify",
    "filter_skip_release_commits",
    "get_renderer",
    "parse_commits",
    "parse_version",
    "synthesize",
]
