"""Update and publish strategies, and chart version resolution."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable

import structlog

from .errors import (
    ChartReleaserError,
    IncompleteUpdateContextError,
    UnsupportedStrategyError,
)
from .semver import Level, Version, find_drift

log = structlog.get_logger(__name__)


class UpdateStrategy(str, enum.Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    DEFAULT = "default"

    @classmethod
    def from_string(cls, name: str) -> UpdateStrategy:
        try:
            return cls(name.lower())
        except ValueError:
            raise UnsupportedStrategyError(f"unsupported update strategy: {name}") from None

    def __str__(self) -> str:
        return self.value


class PublishStrategy(str, enum.Enum):
    COMMIT = "commit"
    PULL_REQUEST = "pull request"

    @classmethod
    def from_string(cls, name: str) -> PublishStrategy:
        try:
            return cls(name.lower())
        except ValueError:
            raise UnsupportedStrategyError(f"unsupported publish strategy: {name}") from None

    def __str__(self) -> str:
        return self.value


@dataclass
class UpdateContext:
    """Versions needed to derive a new chart version.

    The new chart version depends on how the application version moved, so
    both the old and new application versions are needed, along with the old
    chart version that seeds the new one.
    """

    old_app_version: Version | None
    new_app_version: Version | None
    old_chart_version: Version | None
    strategy: UpdateStrategy = UpdateStrategy.DEFAULT

    def is_complete(self) -> bool:
        return not (
            self.old_app_version is None
            or self.new_app_version is None
            or self.old_chart_version is None
        )


def _fixed_level(level: Level, name: str) -> Callable[[UpdateContext], Version]:
    def update(ctx: UpdateContext) -> Version:
        try:
            find_drift(ctx.new_app_version, ctx.old_app_version)
        except ChartReleaserError as exc:
            log.error(f"update {name}: failed to find application version drift", error=str(exc))
            raise
        return ctx.old_chart_version.increment(level)

    update.__name__ = f"update_{name}"
    return update


def update_default(ctx: UpdateContext) -> Version:
    try:
        drift = find_drift(ctx.new_app_version, ctx.old_app_version)
    except ChartReleaserError as exc:
        log.error("update default: failed to find application version drift", error=str(exc))
        raise

    chart = ctx.old_chart_version
    if not drift.has_prerelease:
        # Stable app release: promote a prerelease chart, otherwise bump patch.
        if chart.prerelease:
            return chart.without_prerelease()
        return chart.increment(Level.PATCH)

    if not chart.prerelease:
        return chart.increment(Level.PATCH).increment(Level.PRERELEASE)
    return chart.increment(Level.PRERELEASE)


UPDATERS: dict[UpdateStrategy, Callable[[UpdateContext], Version]] = {
    UpdateStrategy.MAJOR: _fixed_level(Level.MAJOR, "major"),
    UpdateStrategy.MINOR: _fixed_level(Level.MINOR, "minor"),
    UpdateStrategy.PATCH: _fixed_level(Level.PATCH, "patch"),
    UpdateStrategy.DEFAULT: update_default,
}


def update_release(ctx: UpdateContext) -> Version:
    if not ctx.is_complete():
        raise IncompleteUpdateContextError()

    updater = UPDATERS.get(ctx.strategy)
    if updater is None:
        raise UnsupportedStrategyError(f"unsupported release update strategy: {ctx.strategy}")
    return updater(ctx)
