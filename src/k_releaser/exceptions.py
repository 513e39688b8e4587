"""Exception hierarchy for k-releaser.

Every error raised on purpose by k-releaser derives from
:class:`KReleaserError`, so the CLI can report it with a single handler.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class KReleaserError(Exception):
    """Base class for all k-releaser errors."""


# Configuration


class ConfigError(KReleaserError):
    """Configuration could not be loaded."""


class ConfigNotFoundError(ConfigError):
    """A required configuration file does not exist."""


class ConfigValidationError(ConfigError):
    """Configuration exists but has invalid values."""


# Versions


class VersionError(KReleaserError):
    """Version handling failed."""


class InvalidVersionError(VersionError):
    """A string is not a valid semantic version."""


# Changelog


class ChangelogError(KReleaserError):
    """Changelog rendering or update failed."""


class MalformedChangelogError(ChangelogError):
    """The existing changelog has no usable insertion point.

    Attributes:
        document: Name or path of the offending changelog
        reason: Why the document was rejected
    """

    def __init__(self, document: str | Path | None, reason: str) -> None:
        self.document = str(document) if document is not None else "<changelog>"
        self.reason = reason
        super().__init__(f"Malformed changelog {self.document}: {reason}")


# Git


class GitError(KReleaserError):
    """A git command failed.

    Attributes:
        stderr: Captured standard error of the failed command, if any
    """

    def __init__(self, message: str, stderr: str | None = None) -> None:
        self.stderr = stderr
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)


# Project manifests


class ProjectError(KReleaserError):
    """A project manifest could not be read or written."""


class VersionNotFoundError(ProjectError):
    """No version field was found in a manifest."""
