"""Run state shared by the stages of an update pipeline."""

from __future__ import annotations

import dataclasses
import enum
import pprint
import re
import sys
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TextIO

import structlog

from .errors import DeadlineExceededError, ErrorCollector
from .semver import Version
from .strategies import PublishStrategy, UpdateStrategy

if TYPE_CHECKING:
    from .client import RepositoryClient
    from .config import Config

log = structlog.get_logger(__name__)


class RepoType(str, enum.Enum):
    GITHUB = "github"

    @classmethod
    def from_string(cls, name: str) -> RepoType:
        if name.lower() in {"github", "github.com"}:
            return cls.GITHUB
        supported = ", ".join(item.value for item in cls)
        raise ValueError(f"unsupported repository type: {name} (supported: {supported})")

    def __str__(self) -> str:
        return self.value


class PipelineStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    FAILED = "failed"
    COMPLETED = "completed"


@dataclass
class App:
    new_version: Version | None = None
    previous_version: Version | None = None


@dataclass
class Author:
    name: str = ""
    email: str = ""


@dataclass
class File:
    path: str = ""
    previous_contents: str = ""
    new_contents: str = ""

    def has_changes(self) -> bool:
        return self.previous_contents != self.new_contents


@dataclass
class Chart:
    name: str = ""
    sub_path: str = ""
    file: File = field(default_factory=File)
    new_version: Version | None = None
    previous_version: Version | None = None


@dataclass
class Git:
    tag: str = ""
    ref: str = ""
    base: str = ""


@dataclass
class Repository:
    type: RepoType | None = None
    owner: str = ""
    name: str = ""


@dataclass
class Release:
    pr_title: str = ""
    pr_body: str = ""
    update_commit_msg: str = ""
    matches: list[re.Pattern[str]] = field(default_factory=list)
    ignores: list[re.Pattern[str]] = field(default_factory=list)


@dataclass
class RunContext:
    """Mutable state for a single update run.

    The context is populated and updated as each stage operates on it. It is
    owned by one pipeline run and is not shared between threads.
    """

    config: Config | None = None
    out: TextIO = field(default_factory=lambda: sys.stdout)

    token: str = ""
    publish_strategy: PublishStrategy | None = None
    update_strategy: UpdateStrategy | None = None

    app: App = field(default_factory=App)
    author: Author = field(default_factory=Author)
    chart: Chart = field(default_factory=Chart)
    client: RepositoryClient | None = None
    files: list[File] = field(default_factory=list)
    git: Git = field(default_factory=Git)
    repository: Repository = field(default_factory=Repository)
    release: Release = field(default_factory=Release)

    allow_dirty: bool = False
    dry_run: bool = False
    show_diff: bool = False

    deadline: float | None = None
    status: PipelineStatus = PipelineStatus.PENDING
    current_stage: str = ""

    _errors: ErrorCollector = field(default_factory=ErrorCollector, repr=False)

    def check_dry_run(self, err: BaseException) -> None:
        """Re-raise ``err``, or record it and return when running a dry run."""
        if not self.dry_run:
            raise err
        log.warning("dry-run: ignoring error", error=str(err))
        self._errors.add(err)

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        left = self.deadline - time.monotonic()
        if left <= 0:
            raise DeadlineExceededError("update deadline exceeded")
        return left

    def errors(self) -> ErrorCollector | None:
        if self._errors.has_errors():
            return self._errors
        return None

    def dump(self) -> None:
        masked = f"{self.token[:4]}****" if self.token else ""
        lines = [
            "",
            "=== Context ===",
            f"AllowDirty:\t\t{self.allow_dirty}",
            f"DryRun:\t\t\t{self.dry_run}",
            f"ShowDiff:\t\t{self.show_diff}",
            f"PublishStrategy:\t{self.publish_strategy or ''}",
            f"UpdateStrategy:\t\t{self.update_strategy or ''}",
            f"Token:\t\t\t{masked}",
        ]
        sections = {
            "Config": self.config.to_dict() if self.config is not None else None,
            "App": self.app,
            "Author": self.author,
            "Chart": self.chart,
            "Files": self.files,
            "Git": self.git,
            "Repository": self.repository,
            "Release": self.release,
        }
        for title, value in sections.items():
            lines.append(title)
            lines.append(pprint.pformat(_plain(value), sort_dicts=False))
        print("\n".join(lines), file=self.out)

    def print_errors(self) -> None:
        if self._errors.has_errors():
            print("\ndry-run completed with errors", end="", file=self.out)
            print(str(self._errors), end="", file=self.out)
        else:
            print("dry-run completed without errors", file=self.out)


def _plain(value: object) -> object:
    if isinstance(value, Version):
        return str(value)
    if isinstance(value, re.Pattern):
        return value.pattern
    if isinstance(value, enum.Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


def new_context(config: Config | None, timeout: float | None = None) -> RunContext:
    ctx = RunContext(config=config)
    if timeout is not None:
        ctx.deadline = time.monotonic() + timeout
    return ctx


def parse_repository(repo: str) -> Repository:
    """Split ``[type/]owner/name`` into a Repository, defaulting to GitHub."""
    parts = repo.split("/")
    if len(parts) == 2:
        return Repository(type=RepoType.GITHUB, owner=parts[0], name=parts[1])
    if len(parts) == 3:
        return Repository(type=RepoType.from_string(parts[0]), owner=parts[1], name=parts[2])
    raise ValueError(
        "unexpected repository string format - should be in the form of REPO/OWNER/NAME"
    )
