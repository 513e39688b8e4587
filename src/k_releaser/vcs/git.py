"""Thin wrapper around the ``git`` binary.

Only the handful of operations k-releaser needs are exposed: tag
lookup, commit listing, dirty checks and tag creation. Every call is a
blocking ``subprocess.run`` with captured output.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from k_releaser.core.version import Version
from k_releaser.exceptions import GitError, InvalidVersionError

logger = logging.getLogger(__name__)

# Unit and record separators keep multi-line commit bodies intact.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = _FIELD_SEP.join(["%H", "%an", "%ae", "%aI", "%B"]) + _RECORD_SEP


@dataclass(frozen=True)
class Commit:
    """A commit read from history.

    Attributes:
        sha: Full commit hash
        message: Full commit message (subject, then body)
        author_name: Author display name
        author_email: Author e-mail address
        date: Author timestamp
    """

    sha: str
    message: str
    author_name: str = ""
    author_email: str = ""
    date: datetime | None = None

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0].strip()

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


def tag_pattern(tag_template: str) -> re.Pattern[str]:
    """Compile a regex that extracts ``{version}`` from tags built with ``tag_template``."""
    if "{version}" not in tag_template:
        raise ValueError(f"Tag template must contain '{{version}}': {tag_template!r}")
    prefix, suffix = tag_template.split("{version}", 1)
    return re.compile(rf"^{re.escape(prefix)}(?P<version>.+?){re.escape(suffix)}$")


def tag_name(tag_template: str, version: Version) -> str:
    """Render the tag name for ``version``."""
    return tag_template.format(version=version)


def version_from_tag(tag: str, tag_template: str) -> Version | None:
    """Extract the version encoded in ``tag``, or ``None`` if it does not match."""
    match = tag_pattern(tag_template).match(tag)
    if not match:
        return None
    try:
        return Version.parse(match.group("version"))
    except InvalidVersionError:
        return None


class GitRepository:
    """A git working tree.

    Args:
        path: Any directory inside the working tree

    Raises:
        GitError: If ``path`` is not inside a git repository
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        try:
            root = self._run("rev-parse", "--show-toplevel")
        except GitError as e:
            raise GitError(f"Not a git repository: {self.path}") from e
        self.root = Path(root)

    def _run(self, *args: str) -> str:
        cmd = ["git", *args]
        logger.debug("Running %s in %s", " ".join(cmd), self.path)
        try:
            result = subprocess.run(
                cmd,
                cwd=self.path,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found") from e
        except subprocess.CalledProcessError as e:
            raise GitError(f"git {args[0]} failed with exit code {e.returncode}", e.stderr) from e
        return result.stdout.strip()

    def is_dirty(self) -> bool:
        """Return True if the working tree has uncommitted changes."""
        return bool(self._run("status", "--porcelain"))

    def current_branch(self) -> str:
        return self._run("rev-parse", "--abbrev-ref", "HEAD")

    def rev_parse(self, ref: str) -> str:
        """Resolve ``ref`` to the hash of the commit it points at (tags are peeled)."""
        return self._run("rev-parse", f"{ref}^{{commit}}")

    def list_tags(self, pattern: str | None = None) -> list[str]:
        args = ["tag", "--list"]
        if pattern:
            args.append(pattern)
        output = self._run(*args)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def tag_exists(self, tag: str) -> bool:
        return tag in self.list_tags(tag)

    def get_latest_release(self, tag_template: str) -> tuple[str, Version] | None:
        """Find the highest released version among the tags.

        Tags that match the template but hold a pre-release version are
        ignored. Precedence, not tag date, decides which tag is latest.

        Args:
            tag_template: Tag naming template, e.g. ``v{version}``

        Returns:
            ``(tag, version)`` of the latest release, or ``None`` when
            the repository has no release tags yet
        """
        glob = tag_template.replace("{version}", "*")
        candidates: list[tuple[Version, str]] = []
        for tag in self.list_tags(glob):
            version = version_from_tag(tag, tag_template)
            if version is None or version.is_prerelease:
                logger.debug("Ignoring tag %s", tag)
                continue
            candidates.append((version, tag))

        if not candidates:
            return None
        version, tag = max(candidates)
        return tag, version

    def get_commits_since_tag(self, tag: str | None) -> list[Commit]:
        """List commits reachable from HEAD but not from ``tag``, newest first.

        Args:
            tag: Boundary tag, or ``None`` for the whole history

        Returns:
            Commits in ``git log`` order
        """
        revision = f"{tag}..HEAD" if tag else "HEAD"
        try:
            output = self._run("log", f"--format={_LOG_FORMAT}", revision)
        except GitError:
            if tag is None:
                # A repository without commits has no HEAD yet.
                return []
            raise
        return parse_log(output)

    def create_tag(self, tag: str, message: str) -> None:
        """Create an annotated tag on HEAD with ``message`` kept verbatim."""
        # The default cleanup mode drops lines starting with '#', i.e. Markdown headings.
        self._run("tag", "--annotate", "--cleanup=verbatim", tag, "--message", message)

    def push_tag(self, tag: str, remote: str = "origin") -> None:
        self._run("push", remote, f"refs/tags/{tag}")


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with the k-releaser log format."""
    commits = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        sha, author_name, author_email, date, message = record.split(_FIELD_SEP, 4)
        commits.append(
            Commit(
                sha=sha,
                message=message.strip(),
                author_name=author_name,
                author_email=author_email,
                date=datetime.fromisoformat(date) if date else None,
            )
        )
    return commits
