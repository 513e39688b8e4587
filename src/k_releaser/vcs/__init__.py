"""Version control integration."""

from __future__ import annotations

from k_releaser.vcs.git import Commit, GitRepository, tag_name, version_from_tag

__all__ = ["Commit", "GitRepository", "tag_name", "version_from_tag"]
