"""Semantic version model, precedence, increments and drift detection."""

from __future__ import annotations

import dataclasses
import enum
import re
from typing import NamedTuple

from .errors import NoDriftError, ParseError, VersionLessThanBaseError

_NUMBER_RE = re.compile(r"0|[1-9][0-9]*")
_IDENTIFIER_RE = re.compile(r"[0-9A-Za-z-]+")
_NUMERIC_RE = re.compile(r"[0-9]+")


class Level(enum.IntEnum):
    """Significance of a version component, ordered from least to most."""

    NONE = 0
    PRERELEASE = 1
    PATCH = 2
    MINOR = 3
    MAJOR = 4


class Drift(NamedTuple):
    level: Level
    has_prerelease: bool


def _is_numeric(identifier: str) -> bool:
    return _NUMERIC_RE.fullmatch(identifier) is not None


def _parse_number(value: str, component: str, text: str) -> int:
    if not value:
        raise ParseError(f"{component} version is empty in {text!r}")
    if _NUMERIC_RE.fullmatch(value) is None:
        raise ParseError(f"{component} version {value!r} is not a number in {text!r}")
    if _NUMBER_RE.fullmatch(value) is None:
        raise ParseError(f"{component} version {value!r} has a leading zero in {text!r}")
    return int(value)


def _parse_identifiers(value: str, component: str, text: str, *, strict_numeric: bool) -> tuple[str, ...]:
    if not value:
        raise ParseError(f"{component} is empty in {text!r}")
    identifiers = tuple(value.split("."))
    for identifier in identifiers:
        if not identifier:
            raise ParseError(f"{component} {value!r} contains an empty identifier in {text!r}")
        if _IDENTIFIER_RE.fullmatch(identifier) is None:
            raise ParseError(
                f"{component} identifier {identifier!r} contains invalid characters in {text!r}"
            )
        if strict_numeric and _is_numeric(identifier) and _NUMBER_RE.fullmatch(identifier) is None:
            raise ParseError(
                f"{component} identifier {identifier!r} has a leading zero in {text!r}"
            )
    return identifiers


@dataclasses.dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()
    prefix: bool = False

    @property
    def prerelease_text(self) -> str:
        return ".".join(self.prerelease)

    @property
    def build_text(self) -> str:
        return ".".join(self.build)

    def __str__(self) -> str:
        text = f"{'v' if self.prefix else ''}{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + self.prerelease_text
        if self.build:
            text += "+" + self.build_text
        return text

    def compare(self, other: Version) -> int:
        return compare(self, other)

    def without_prerelease(self) -> Version:
        return dataclasses.replace(self, prerelease=())

    def increment(self, level: Level) -> Version:
        """Return a new version incremented at the given level.

        Incrementing a release component resets every lower component and
        clears prerelease and build metadata. Incrementing the prerelease
        either starts a ``pre.1`` prerelease, bumps the rightmost numeric
        identifier, or appends a ``1`` identifier when none is numeric.
        """
        if level is Level.MAJOR:
            return dataclasses.replace(
                self, major=self.major + 1, minor=0, patch=0, prerelease=(), build=()
            )
        if level is Level.MINOR:
            return dataclasses.replace(
                self, minor=self.minor + 1, patch=0, prerelease=(), build=()
            )
        if level is Level.PATCH:
            return dataclasses.replace(self, patch=self.patch + 1, prerelease=(), build=())
        if level is Level.PRERELEASE:
            return dataclasses.replace(self, prerelease=_next_prerelease(self.prerelease))
        if level is Level.NONE:
            return self
        raise ValueError(f"attempting to increment version with unsupported level: {level!r}")


def _next_prerelease(prerelease: tuple[str, ...]) -> tuple[str, ...]:
    if not prerelease:
        return ("pre", "1")
    identifiers = list(prerelease)
    for idx in range(len(identifiers) - 1, -1, -1):
        if _is_numeric(identifiers[idx]):
            identifiers[idx] = str(int(identifiers[idx]) + 1)
            return tuple(identifiers)
    identifiers.append("1")
    return tuple(identifiers)


def parse_version(text: str) -> Version:
    if not text:
        raise ParseError("version string is empty")

    raw = text
    prefix = raw.startswith("v")
    if prefix:
        raw = raw[1:]

    raw, has_build, build_raw = raw.partition("+")
    core, has_prerelease, prerelease_raw = raw.partition("-")

    parts = core.split(".")
    if len(parts) != 3:
        raise ParseError(
            f"version core {core!r} must have exactly three dot-separated parts in {text!r}"
        )
    major = _parse_number(parts[0], "major", text)
    minor = _parse_number(parts[1], "minor", text)
    patch = _parse_number(parts[2], "patch", text)

    prerelease: tuple[str, ...] = ()
    if has_prerelease:
        prerelease = _parse_identifiers(prerelease_raw, "prerelease", text, strict_numeric=True)

    build: tuple[str, ...] = ()
    if has_build:
        build = _parse_identifiers(build_raw, "build metadata", text, strict_numeric=False)

    return Version(
        major=major,
        minor=minor,
        patch=patch,
        prerelease=prerelease,
        build=build,
        prefix=prefix,
    )


def _compare_identifiers(left: str, right: str) -> int:
    left_numeric = _is_numeric(left)
    right_numeric = _is_numeric(right)
    if left_numeric and right_numeric:
        left_value, right_value = int(left), int(right)
        return (left_value > right_value) - (left_value < right_value)
    if left_numeric:
        return -1
    if right_numeric:
        return 1
    return (left > right) - (left < right)


def compare(a: Version, b: Version) -> int:
    """Compare two versions by semver precedence, ignoring build metadata."""
    left = (a.major, a.minor, a.patch)
    right = (b.major, b.minor, b.patch)
    if left != right:
        return 1 if left > right else -1

    if not a.prerelease and not b.prerelease:
        return 0
    if not a.prerelease:
        return 1
    if not b.prerelease:
        return -1

    for left_id, right_id in zip(a.prerelease, b.prerelease):
        result = _compare_identifiers(left_id, right_id)
        if result:
            return result
    return (len(a.prerelease) > len(b.prerelease)) - (len(a.prerelease) < len(b.prerelease))


def find_drift(current: Version, base: Version) -> Drift:
    """Find the most significant component at which ``current`` moved past ``base``.

    Only forward drift is meaningful: a ``current`` lower than ``base`` raises
    ``VersionLessThanBaseError`` and equal precedence (build metadata is
    ignored) raises ``NoDriftError``. The prerelease component is compared as
    a plain string.
    """
    result = compare(current, base)
    if result < 0:
        raise VersionLessThanBaseError()
    if result == 0:
        raise NoDriftError()

    level = Level.NONE
    if current.major != base.major:
        level = Level.MAJOR
    elif current.minor != base.minor:
        level = Level.MINOR
    elif current.patch != base.patch:
        level = Level.PATCH
    elif current.prerelease_text != base.prerelease_text:
        level = Level.PRERELEASE

    return Drift(level=level, has_prerelease=bool(current.prerelease))
