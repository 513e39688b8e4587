"""Configuration management for k-releaser."""

from __future__ import annotations

from k_releaser.config.loader import load_config
from k_releaser.config.models import (
    ChangelogConfig,
    CommitsConfig,
    KReleaserConfig,
    VersionConfig,
)

__all__ = [
    "ChangelogConfig",
    "CommitsConfig",
    "KReleaserConfig",
    "VersionConfig",
    "load_config",
]
