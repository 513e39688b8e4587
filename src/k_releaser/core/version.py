"""Semantic versions and bump decisions.

Versions follow SemVer 2.0.0. Ordering implements the full precedence
rules, including pre-release identifiers; build metadata is carried
but never compared.

Bumps below 1.0.0 are shifted down one level: a breaking change bumps
the minor number and a feature bumps the patch number.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, replace
from enum import IntEnum

from k_releaser.exceptions import InvalidVersionError

_NUMERIC = r"0|[1-9]\d*"
_IDENTIFIER = r"[0-9A-Za-z-]+"

SEMVER_PATTERN = re.compile(
    rf"^v?(?P<major>{_NUMERIC})\.(?P<minor>{_NUMERIC})\.(?P<patch>{_NUMERIC})"
    rf"(?:-(?P<pre>{_IDENTIFIER}(?:\.{_IDENTIFIER})*))?"
    rf"(?:\+(?P<build>{_IDENTIFIER}(?:\.{_IDENTIFIER})*))?$"
)


class BumpType(IntEnum):
    """Magnitude of a version increase.

    Ordered so that ``max()`` over several decisions yields the
    strongest one. ``NONE`` is the identity.
    """

    NONE = 0
    PATCH = 1
    MINOR = 2
    MAJOR = 3

    def __str__(self) -> str:
        return self.name.lower()


def _compare_prerelease(left: tuple[str, ...], right: tuple[str, ...]) -> int:
    # A release outranks any of its pre-releases.
    if not left and not right:
        return 0
    if not left:
        return 1
    if not right:
        return -1

    for a, b in zip(left, right, strict=False):
        if a == b:
            continue
        a_num, b_num = a.isdigit(), b.isdigit()
        if a_num and b_num:
            return -1 if int(a) < int(b) else 1
        if a_num != b_num:
            # Numeric identifiers have lower precedence than alphanumeric ones
            return -1 if a_num else 1
        return -1 if a < b else 1

    if len(left) == len(right):
        return 0
    return -1 if len(left) < len(right) else 1


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A semantic version.

    Attributes:
        major: Major version number
        minor: Minor version number
        patch: Patch version number
        prerelease: Dot-separated pre-release identifiers
        build: Dot-separated build metadata identifiers
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise InvalidVersionError(f"Version numbers must be non-negative: {self!s}")

    @classmethod
    def parse(cls, value: str) -> Version:
        """Parse a version string such as ``1.2.3``, ``v1.2.3-rc.1`` or ``1.0.0+build.5``.

        Args:
            value: Version string, optionally prefixed with ``v``

        Returns:
            Parsed version

        Raises:
            InvalidVersionError: If the string is not a valid semantic version
        """
        match = SEMVER_PATTERN.match(value.strip())
        if not match:
            raise InvalidVersionError(f"Invalid semantic version: {value!r}")

        pre = match.group("pre")
        build = match.group("build")
        prerelease = tuple(pre.split(".")) if pre else ()
        for ident in prerelease:
            if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
                raise InvalidVersionError(
                    f"Invalid semantic version: {value!r} (leading zero in {ident!r})"
                )

        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=prerelease,
            build=tuple(build.split(".")) if build else (),
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def is_initial_development(self) -> bool:
        """True for ``0.y.z`` versions."""
        return self.major == 0

    def release(self) -> Version:
        """Return this version without pre-release and build metadata."""
        return replace(self, prerelease=(), build=())

    def bump(self, bump_type: BumpType) -> Version:
        """Return the next released version for a bump decision.

        Below 1.0.0 the bump is shifted down one level. Pre-release and
        build metadata are always dropped.

        Args:
            bump_type: The bump to apply

        Returns:
            The bumped version

        Raises:
            ValueError: If ``bump_type`` is ``BumpType.NONE``
        """
        if bump_type is BumpType.NONE:
            raise ValueError("BumpType.NONE does not produce a new version")

        if self.is_initial_development:
            bump_type = BumpType(bump_type - 1) if bump_type > BumpType.PATCH else bump_type

        if bump_type is BumpType.MAJOR:
            return Version(self.major + 1, 0, 0)
        if bump_type is BumpType.MINOR:
            return Version(self.major, self.minor + 1, 0)
        return Version(self.major, self.minor, self.patch + 1)

    def _core(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._core() == other._core() and self.prerelease == other.prerelease

    def __hash__(self) -> int:
        return hash((self._core(), self.prerelease))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        if self._core() != other._core():
            return self._core() < other._core()
        return _compare_prerelease(self.prerelease, other.prerelease) < 0

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text


def parse_version(value: str) -> Version:
    """Parse a version string. See :meth:`Version.parse`."""
    return Version.parse(value)


def apply_bump(current: Version, bump_type: BumpType) -> Version:
    """Apply a bump decision to ``current``. See :meth:`Version.bump`."""
    return current.bump(bump_type)
