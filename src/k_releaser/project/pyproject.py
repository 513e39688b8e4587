"""Version fields in project manifests.

The released version is written back into ``pyproject.toml`` files and
Python modules listed in ``version.version_files``. Edits are targeted
regex substitutions so formatting and comments survive.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from k_releaser.config.loader import find_pyproject_toml
from k_releaser.exceptions import ProjectError, VersionNotFoundError

logger = logging.getLogger(__name__)

# Tables that may carry a version, in lookup order: PEP 621, then Poetry.
VERSION_TABLES = ("project", "tool.poetry")

_VERSION_LINE = re.compile(r'^(version\s*=\s*)["\'](?P<version>[^"\']+)["\']', re.MULTILINE)

DEFAULT_VERSION_PATTERNS = (
    r'^(__version__\s*=\s*)["\'](?P<version>[^"\']+)["\']',
    r'^(VERSION\s*=\s*)["\'](?P<version>[^"\']+)["\']',
)


def _resolve_pyproject(path: Path | None) -> Path:
    if path is None:
        return find_pyproject_toml()
    if path.is_dir():
        return find_pyproject_toml(path)
    return path


def _table_span(content: str, table: str) -> tuple[int, int] | None:
    # A table runs from its header to the next header or the end of the file.
    header = re.search(rf"^\[{re.escape(table)}\][ \t]*$", content, re.MULTILINE)
    if not header:
        return None
    following = re.search(r"^\[", content[header.end() :], re.MULTILINE)
    end = header.end() + following.start() if following else len(content)
    return header.end(), end


def get_pyproject_version(path: Path | None = None) -> str:
    """Read the version from ``pyproject.toml``.

    Args:
        path: ``pyproject.toml`` itself or a directory to search from

    Returns:
        Version string

    Raises:
        VersionNotFoundError: If neither ``[project]`` nor ``[tool.poetry]`` has a version
    """
    pyproject_path = _resolve_pyproject(path)
    content = pyproject_path.read_text(encoding="utf-8")

    for table in VERSION_TABLES:
        span = _table_span(content, table)
        if span is None:
            continue
        match = _VERSION_LINE.search(content, *span)
        if match:
            return match.group("version")

    raise VersionNotFoundError(
        f"Could not find version in {pyproject_path}. "
        "Expected [project].version or [tool.poetry].version."
    )


def update_pyproject_version(path: Path | None, new_version: str) -> Path:
    """Set the version in ``pyproject.toml``.

    Args:
        path: ``pyproject.toml`` itself or a directory to search from
        new_version: Version to write

    Returns:
        Path of the updated file

    Raises:
        VersionNotFoundError: If no version field exists
        ProjectError: If the file already holds ``new_version``
    """
    pyproject_path = _resolve_pyproject(path)
    content = pyproject_path.read_text(encoding="utf-8")

    for table in VERSION_TABLES:
        span = _table_span(content, table)
        if span is None:
            continue
        match = _VERSION_LINE.search(content, *span)
        if not match:
            continue
        if match.group("version") == new_version:
            raise ProjectError(f"Version in {pyproject_path} is already {new_version}.")
        replacement = f'{match.group(1)}"{new_version}"'
        updated = content[: match.start()] + replacement + content[match.end() :]
        pyproject_path.write_text(updated, encoding="utf-8")
        logger.debug("Set [%s].version = %s in %s", table, new_version, pyproject_path)
        return pyproject_path

    raise VersionNotFoundError(
        f"Could not find version to update in {pyproject_path}. "
        "Expected [project].version or [tool.poetry].version."
    )


def get_version_from_file(file_path: Path, pattern: str | None = None) -> str:
    """Read the version assigned in a Python module.

    Args:
        file_path: Module to read
        pattern: Regex with a ``version`` named group; defaults to
            ``__version__ = "..."`` and ``VERSION = "..."``

    Raises:
        ProjectError: If the file does not exist
        VersionNotFoundError: If no pattern matches
    """
    if not file_path.is_file():
        raise ProjectError(f"Version file not found: {file_path}")

    content = file_path.read_text(encoding="utf-8")
    for pat in (pattern,) if pattern else DEFAULT_VERSION_PATTERNS:
        match = re.search(pat, content, re.MULTILINE)
        if match:
            return match.group("version")

    raise VersionNotFoundError(f"Could not find version pattern in {file_path}")


def update_version_file(file_path: Path, new_version: str, pattern: str | None = None) -> None:
    """Rewrite the version assigned in a Python module.

    Args:
        file_path: Module to update
        new_version: Version to write
        pattern: Regex whose first group is the text kept before the quoted version

    Raises:
        ProjectError: If the file does not exist
        VersionNotFoundError: If no pattern matches
    """
    if not file_path.is_file():
        raise ProjectError(f"Version file not found: {file_path}")

    content = file_path.read_text(encoding="utf-8")
    for pat in (pattern,) if pattern else DEFAULT_VERSION_PATTERNS:
        new_content, count = re.subn(
            pat,
            rf'\g<1>"{new_version}"',
            content,
            count=1,
            flags=re.MULTILINE,
        )
        if count:
            file_path.write_text(new_content, encoding="utf-8")
            return

    raise VersionNotFoundError(f"Could not find version pattern in {file_path}")


def write_version(file_path: Path, new_version: str) -> bool:
    """Write ``new_version`` to a manifest, choosing the format by file name.

    Returns:
        False if the file already held ``new_version`` and was left as is
    """
    is_pyproject = file_path.name == "pyproject.toml"
    if is_pyproject:
        current = get_pyproject_version(file_path)
    else:
        current = get_version_from_file(file_path)
    if current == new_version:
        logger.info("%s already at %s", file_path, new_version)
        return False

    if is_pyproject:
        update_pyproject_version(file_path, new_version)
    else:
        update_version_file(file_path, new_version)
    return True
