"""Conventional commit parsing and bump calculation.

Commit subjects are matched against ``type(scope)!: description``.
Parsing is total: a message that does not follow the convention is
classified as ``other`` instead of raising, so one sloppy commit never
blocks a release.

See https://www.conventionalcommits.org/en/v1.0.0/
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import reduce
from typing import TYPE_CHECKING

from k_releaser.core.version import BumpType

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from k_releaser.config.models import CommitsConfig
    from k_releaser.vcs.git import Commit

logger = logging.getLogger(__name__)

OTHER = "other"

KNOWN_TYPES: frozenset[str] = frozenset(
    {
        "feat",
        "fix",
        "perf",
        "refactor",
        "docs",
        "chore",
        "build",
        "ci",
        "test",
        "style",
        "revert",
    }
)

DEFAULT_BREAKING_PATTERN = r"BREAKING[ -]CHANGE:"

SUBJECT_PATTERN = re.compile(
    r"^(?P<type>[A-Za-z][\w-]*)"
    r"(?:\((?P<scope>[^()\r\n]*)\))?"
    r"(?P<breaking>!)?"
    r":[ \t]+(?P<description>\S.*?)\s*$"
)


@dataclass(frozen=True)
class ParsedCommit:
    """A commit classified according to the conventional commit format.

    ``commit_type`` is one of :data:`KNOWN_TYPES` or ``"other"``. When a
    subject follows the grammar but uses an unrecognised type, that type
    is kept in ``raw_type`` so it is never lost.

    Attributes:
        commit_type: Normalised commit type, or ``"other"``
        description: Subject text after the ``type(scope)!:`` prefix
        scope: Scope inside the parentheses, if any
        is_breaking: True for ``!`` subjects and ``BREAKING CHANGE`` footers
        body: Everything after the subject line
        raw_type: Unrecognised type token as written
        commit: The commit this was parsed from
    """

    commit_type: str
    description: str
    scope: str | None = None
    is_breaking: bool = False
    body: str = ""
    raw_type: str | None = None
    commit: Commit | None = None

    @property
    def is_conventional(self) -> bool:
        return self.commit_type != OTHER

    @property
    def sha(self) -> str | None:
        return self.commit.sha if self.commit is not None else None

    @classmethod
    def from_message(
        cls,
        message: str,
        breaking_pattern: str = DEFAULT_BREAKING_PATTERN,
        commit: Commit | None = None,
    ) -> ParsedCommit:
        """Classify a raw commit message.

        Args:
            message: Full commit message
            breaking_pattern: Regex matched at the start of footer lines
            commit: Originating commit, kept for traceability

        Returns:
            The classified commit
        """
        subject, _, remainder = message.strip("\n").partition("\n")
        subject = subject.strip()
        body = remainder.strip("\n")

        match = SUBJECT_PATTERN.match(subject)
        if not match:
            return cls(commit_type=OTHER, description=subject, body=body, commit=commit)

        is_breaking = bool(match.group("breaking")) or _has_breaking_footer(
            remainder, breaking_pattern
        )
        token = match.group("type")
        if token.lower() not in KNOWN_TYPES:
            return cls(
                commit_type=OTHER,
                description=subject,
                is_breaking=is_breaking,
                body=body,
                raw_type=token,
                commit=commit,
            )

        return cls(
            commit_type=token.lower(),
            description=match.group("description"),
            scope=(match.group("scope") or "").strip() or None,
            is_breaking=is_breaking,
            body=body,
            commit=commit,
        )

    @classmethod
    def from_commit(
        cls,
        commit: Commit,
        breaking_pattern: str = DEFAULT_BREAKING_PATTERN,
    ) -> ParsedCommit:
        """Classify a commit read from history."""
        return cls.from_message(commit.message, breaking_pattern, commit=commit)


def _has_breaking_footer(remainder: str, breaking_pattern: str) -> bool:
    # Footers only count after a blank line separating them from the subject/body.
    footer = re.compile(breaking_pattern, re.IGNORECASE)
    seen_blank = False
    for line in remainder.splitlines():
        if not line.strip():
            seen_blank = True
        elif seen_blank and footer.match(line.strip()):
            return True
    return False


def classify(message: str, breaking_pattern: str = DEFAULT_BREAKING_PATTERN) -> ParsedCommit:
    """Classify a commit message. Never raises."""
    return ParsedCommit.from_message(message, breaking_pattern)


def parse_commits(commits: Iterable[Commit], config: CommitsConfig) -> list[ParsedCommit]:
    """Parse commits, keeping only those allowed by ``config.scope_regex``.

    Args:
        commits: Commits to parse, in the order they should be reported
        config: Commit configuration

    Returns:
        Parsed commits in the input order
    """
    scope_filter = re.compile(config.scope_regex) if config.scope_regex else None
    parsed = []
    for commit in commits:
        pc = ParsedCommit.from_commit(commit, config.breaking_pattern)
        if scope_filter and not (pc.scope and scope_filter.search(pc.scope)):
            logger.debug("Skipping %s: scope %r filtered out", commit.short_sha, pc.scope)
            continue
        parsed.append(pc)
    return parsed


def filter_skip_release_commits(commits: Iterable[Commit], patterns: Sequence[str]) -> list[Commit]:
    """Drop commits whose message contains a skip-release marker.

    Markers are matched case-insensitively anywhere in the message.
    """
    lowered = [p.lower() for p in patterns]
    kept = []
    for commit in commits:
        message = commit.message.lower()
        if any(p in message for p in lowered):
            logger.info("Skipping %s: %s", commit.short_sha, commit.subject)
            continue
        kept.append(commit)
    return kept


def commit_bump(commit: ParsedCommit, config: CommitsConfig | None = None) -> BumpType:
    """Bump implied by a single commit."""
    if commit.is_breaking:
        return BumpType.MAJOR

    types_major = config.types_major if config else []
    types_minor = config.types_minor if config else ["feat"]
    types_patch = config.types_patch if config else ["fix", "perf"]

    if commit.commit_type in types_major:
        return BumpType.MAJOR
    if commit.commit_type in types_minor:
        return BumpType.MINOR
    if commit.commit_type in types_patch:
        return BumpType.PATCH
    return BumpType.NONE


def calculate_bump(
    commits: Iterable[ParsedCommit],
    config: CommitsConfig | None = None,
) -> BumpType:
    """Fold commits into a single bump decision.

    The strongest per-commit bump wins; an empty sequence gives
    ``BumpType.NONE``.
    """
    return reduce(max, (commit_bump(c, config) for c in commits), BumpType.NONE)
