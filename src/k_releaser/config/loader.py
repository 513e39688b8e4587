"""Configuration discovery and loading.

Configuration is looked up in the project directory, in order:

1. ``k-releaser.toml``
2. ``.k-releaser.toml``
3. the ``[tool.k-releaser]`` table of ``pyproject.toml``

If none is present the defaults are used.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from k_releaser.config.models import KReleaserConfig
from k_releaser.exceptions import ConfigNotFoundError, ConfigValidationError

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("k-releaser.toml", ".k-releaser.toml")
PYPROJECT_TABLE = "k-releaser"


def load_toml(path: Path) -> dict[str, Any]:
    """Read a TOML file.

    Args:
        path: File to read

    Returns:
        Parsed TOML document

    Raises:
        ConfigNotFoundError: If the file does not exist
        ConfigValidationError: If the file is not valid TOML
    """
    if not path.is_file():
        raise ConfigNotFoundError(f"Configuration file not found: {path}")
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigValidationError(f"Invalid TOML in {path}: {e}") from e


def find_pyproject_toml(start: Path | None = None) -> Path:
    """Find ``pyproject.toml`` in ``start`` or one of its parents.

    Raises:
        ConfigNotFoundError: If no ``pyproject.toml`` exists up to the filesystem root
    """
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    raise ConfigNotFoundError(f"No pyproject.toml found in {current} or its parents")


def extract_pyproject_config(pyproject: dict[str, Any]) -> dict[str, Any]:
    """Return the ``[tool.k-releaser]`` table, or an empty dict."""
    return pyproject.get("tool", {}).get(PYPROJECT_TABLE, {})


def find_config_file(project_path: Path) -> Path | None:
    """Return the configuration file used for ``project_path``, if any."""
    for name in CONFIG_FILENAMES:
        candidate = project_path / name
        if candidate.is_file():
            return candidate

    pyproject = project_path / "pyproject.toml"
    if pyproject.is_file() and extract_pyproject_config(load_toml(pyproject)):
        return pyproject
    return None


def parse_config(data: dict[str, Any], source: Path | str = "<config>") -> KReleaserConfig:
    """Validate raw configuration data.

    Raises:
        ConfigValidationError: If any value is invalid
    """
    try:
        return KReleaserConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration in {source}:\n{e}") from e


def load_config(project_path: Path | None = None) -> KReleaserConfig:
    """Load the configuration for a project.

    Args:
        project_path: Project directory (defaults to the current directory)

    Returns:
        Validated configuration

    Raises:
        ConfigValidationError: If the configuration is invalid
    """
    project_path = project_path or Path.cwd()
    config_file = find_config_file(project_path)
    if config_file is None:
        logger.debug("No configuration found in %s, using defaults", project_path)
        return KReleaserConfig()

    logger.debug("Loading configuration from %s", config_file)
    data = load_toml(config_file)
    if config_file.name == "pyproject.toml":
        data = extract_pyproject_config(data)
    return parse_config(data, config_file)
