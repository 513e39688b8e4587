"""Release synthesis.

:func:`synthesize` is the whole release decision in one pure call:
given the last release and the commits made since, it returns either a
:class:`ReleasePlan` with the next version and the updated changelog,
or :class:`NoReleaseNeeded`. It performs no I/O; reading history and
writing files is the caller's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from k_releaser.config.models import KReleaserConfig
from k_releaser.core.changelog import ChangelogDocument, build_section, get_renderer
from k_releaser.core.commits import calculate_bump, filter_skip_release_commits, parse_commits
from k_releaser.core.version import BumpType

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from k_releaser.core.changelog import ChangelogSection, SectionRenderer
    from k_releaser.core.commits import ParsedCommit
    from k_releaser.core.version import Version
    from k_releaser.vcs.git import Commit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoReleaseNeeded:
    """Nothing since the last release justifies a new version."""

    reason: str
    previous_version: Version | None = None


@dataclass(frozen=True)
class ReleasePlan:
    """Outcome of a synthesis run that produces a release.

    Attributes:
        previous_version: Last released version, ``None`` on the first release
        next_version: Version to release
        bump: Bump decision derived from the commits
        commits: Parsed commits included in the release, in display order
        section: Grouped changelog section for the release
        section_text: Rendered section
        changelog: Changelog with the new section inserted
        changelog_updated: False if the changelog already had this version
    """

    previous_version: Version | None
    next_version: Version
    bump: BumpType
    commits: tuple[ParsedCommit, ...]
    section: ChangelogSection
    section_text: str
    changelog: ChangelogDocument
    changelog_updated: bool = True

    @property
    def is_first_release(self) -> bool:
        return self.previous_version is None


def synthesize(
    last_version: Version | None,
    last_boundary: str | None,
    new_commits: Sequence[Commit],
    existing_changelog: ChangelogDocument,
    *,
    config: KReleaserConfig | None = None,
    release_date: date | None = None,
    renderer: SectionRenderer | None = None,
) -> ReleasePlan | NoReleaseNeeded:
    """Decide the next release and produce its changelog.

    Args:
        last_version: Last released version, or ``None`` if nothing was released yet
        last_boundary: Commit id of the last release; that commit is never included
        new_commits: Commits since the last release, newest first (``git log`` order)
        existing_changelog: Current changelog, left untouched
        config: Configuration, defaults if omitted
        release_date: Date for the section heading
        renderer: Section renderer, chosen from the configuration if omitted

    Returns:
        A :class:`ReleasePlan`, or :class:`NoReleaseNeeded` when no commit
        warrants a version change
    """
    config = config or KReleaserConfig()

    commits = list(new_commits)
    if last_boundary:
        commits = [c for c in commits if c.sha != last_boundary]
    if not commits:
        return NoReleaseNeeded("No commits since the last release", last_version)

    commits = filter_skip_release_commits(commits, config.commits.skip_release_patterns)
    if config.changelog.sort == "oldest":
        commits.reverse()

    parsed = parse_commits(commits, config.commits)
    bump = calculate_bump(parsed, config.commits)
    if bump is BumpType.NONE:
        return NoReleaseNeeded("No releasable changes since the last release", last_version)

    if last_version is None:
        next_version = config.initial_version
    else:
        next_version = last_version.bump(bump)
    logger.debug("Bump %s: %s -> %s", bump, last_version, next_version)

    section = build_section(next_version, release_date, parsed, config.changelog)
    section_text = (renderer or get_renderer(config.changelog))(section)

    if existing_changelog.has_version(next_version):
        logger.info("Changelog already contains %s, leaving it unchanged", next_version)
        changelog = existing_changelog
        updated = False
    else:
        changelog = existing_changelog.insert_section(section_text)
        updated = True

    return ReleasePlan(
        previous_version=last_version,
        next_version=next_version,
        bump=bump,
        commits=tuple(parsed),
        section=section,
        section_text=section_text,
        changelog=changelog,
        changelog_updated=updated,
    )
