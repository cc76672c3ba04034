"""Error taxonomy and the multi-error collector used by dry runs."""

from __future__ import annotations

from typing import Iterator


class ChartReleaserError(RuntimeError):
    """Base class for errors raised by chart-releaser."""


class ParseError(ChartReleaserError, ValueError):
    """Raised when a version string is malformed."""


class VersionLessThanBaseError(ChartReleaserError):
    """Raised when a version is less than the base it is compared to."""

    def __init__(self, message: str = "version is less than the starting base version") -> None:
        super().__init__(message)


class NoDriftError(ChartReleaserError):
    """Raised when two versions have the same precedence."""

    def __init__(self, message: str = "no version drift detected, versions are equal") -> None:
        super().__init__(message)


class IncompleteUpdateContextError(ChartReleaserError):
    def __init__(self, message: str = "incomplete update context") -> None:
        super().__init__(message)


class UnsupportedStrategyError(ChartReleaserError):
    """Raised for an unrecognized update or publish strategy name."""


class DeadlineExceededError(ChartReleaserError):
    """Raised when the run deadline elapses."""


class ConfigError(ChartReleaserError):
    """Raised when configuration cannot be loaded."""


class ErrorCollector(ChartReleaserError):
    """Ordered collection of errors, used for deferred error reporting.

    A collector is itself an error so that it can be raised as the terminal
    summary of a validation pass or a dry run.
    """

    def __init__(self) -> None:
        super().__init__()
        self._errors: list[BaseException] = []

    def add(self, err: BaseException) -> None:
        if isinstance(err, ErrorCollector):
            raise TypeError("use merge() to combine error collectors")
        self._errors.append(err)

    def merge(self, other: ErrorCollector) -> None:
        self._errors.extend(other._errors)

    def has_errors(self) -> bool:
        return len(self._errors) > 0

    def count(self) -> int:
        return len(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(list(self._errors))

    def __str__(self) -> str:
        if not self._errors:
            return ""
        return "\nErrors:\n • " + "\n • ".join(str(err) for err in self._errors) + "\n\n"

    def __repr__(self) -> str:
        return f"ErrorCollector({self._errors!r})"
