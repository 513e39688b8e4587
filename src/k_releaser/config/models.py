"""Pydantic models for k-releaser configuration.

All sections have defaults, so an empty configuration is valid. Unknown
keys are rejected to surface typos early.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from k_releaser.core.version import Version

DEFAULT_CHANGELOG_GROUPS: dict[str, str] = {
    "feat": "Features",
    "fix": "Bug Fixes",
    "perf": "Performance",
    "refactor": "Refactoring",
    "revert": "Reverts",
    "docs": "Documentation",
}


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class CommitsConfig(_Section):
    """How commits are classified and which ones count towards a bump."""

    types_major: list[str] = Field(default_factory=list)
    types_minor: list[str] = Field(default_factory=lambda: ["feat"])
    types_patch: list[str] = Field(default_factory=lambda: ["fix", "perf"])
    breaking_pattern: str = r"BREAKING[ -]CHANGE:"
    scope_regex: str | None = None
    skip_release_patterns: list[str] = Field(
        default_factory=lambda: ["[skip release]", "[release skip]", "[no release]"]
    )

    @field_validator("breaking_pattern", "scope_regex")
    @classmethod
    def _check_regex(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"invalid regular expression {value!r}: {e}") from e
        return value


class ChangelogConfig(_Section):
    """Changelog location and rendering options."""

    enabled: bool = True
    path: Path = Path("CHANGELOG.md")
    groups: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_CHANGELOG_GROUPS))
    breaking_label: str = "Breaking Changes"
    sort: str = "oldest"
    include_scope: bool = True
    include_sha: bool = True
    commit_link: str | None = None
    entry_template: str = "- {scope}{description}{reference}"
    body: str | None = None

    @field_validator("sort")
    @classmethod
    def _check_sort(cls, value: str) -> str:
        value = value.lower()
        if value not in ("oldest", "newest"):
            raise ValueError("sort must be 'oldest' or 'newest'")
        return value


class VersionConfig(_Section):
    """Version seeding, tag naming and files that carry the version."""

    initial_version: str = "0.1.0"
    tag_template: str = "v{version}"
    version_files: list[Path] = Field(default_factory=list)

    @field_validator("initial_version")
    @classmethod
    def _check_initial_version(cls, value: str) -> str:
        from k_releaser.core.version import Version
        from k_releaser.exceptions import InvalidVersionError

        try:
            Version.parse(value)
        except InvalidVersionError as e:
            raise ValueError(str(e)) from e
        return value

    @field_validator("tag_template")
    @classmethod
    def _check_tag_template(cls, value: str) -> str:
        if "{version}" not in value:
            raise ValueError("tag_template must contain '{version}'")
        return value


class KReleaserConfig(_Section):
    """Root configuration model."""

    default_branch: str = "main"
    allow_dirty: bool = False
    remote: str = "origin"
    commits: CommitsConfig = Field(default_factory=CommitsConfig)
    changelog: ChangelogConfig = Field(default_factory=ChangelogConfig)
    version: VersionConfig = Field(default_factory=VersionConfig)

    @property
    def tag_template(self) -> str:
        return self.version.tag_template

    @property
    def changelog_path(self) -> Path:
        return self.changelog.path

    @property
    def initial_version(self) -> Version:
        from k_releaser.core.version import Version

        return Version.parse(self.version.initial_version)
