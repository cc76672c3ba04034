"""Loading, schema validation and semantic checks for .chartreleaser.yml."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from .errors import ConfigError, ErrorCollector, UnsupportedStrategyError
from .strategies import UpdateStrategy

DEFAULT_FILE = ".chartreleaser.yml"
CONFIG_VERSION = "v1"
SCHEMA_PATH = Path(__file__).resolve().parent / "schema" / "chartreleaser.schema.json"


class NoConfigError(ConfigError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"{DEFAULT_FILE} file not found: {path}")
        self.path = path


class ConfigExistsError(ConfigError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"{DEFAULT_FILE} config file already exists: {path}")
        self.path = path


def config_path(path: str | Path | None = None) -> Path:
    if not path:
        return Path.cwd() / DEFAULT_FILE
    resolved = Path(path)
    if not resolved.exists():
        raise NoConfigError(resolved)
    if resolved.is_dir():
        return resolved / DEFAULT_FILE
    return resolved


@dataclass
class VersionedConfig:
    version: str
    data: dict[str, Any]
    path: Path


def load_versioned(path: str | Path | None = None) -> VersionedConfig:
    resolved = config_path(path)
    if not resolved.exists():
        raise NoConfigError(resolved)

    try:
        data = yaml.safe_load(resolved.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"unable to parse {resolved}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping/object: {resolved}")
    if data.get("version") in (None, ""):
        raise ConfigError("no version specified in config")
    return VersionedConfig(version=str(data["version"]), data=data, path=resolved)


def _schema_validator() -> Draft202012Validator:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def _compact(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value not in (None, "", [], {})}


@dataclass
class ChartConfig:
    name: str = ""
    repo: str = ""
    path: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChartConfig:
        return cls(
            name=data.get("name", ""),
            repo=data.get("repo", ""),
            path=data.get("path", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({"name": self.name, "repo": self.repo, "path": self.path})

    def validate(self) -> ErrorCollector:
        collector = ErrorCollector()
        if not self.name:
            collector.add(ConfigError("required option 'chart.name' missing from config"))
        if not self.repo:
            collector.add(ConfigError("required option 'chart.repo' missing from config"))
        elif not self.repo.startswith("github.com"):
            collector.add(
                ConfigError(
                    "unsupported repo specified in 'chart.repo'. "
                    "currently supported repos include: github.com"
                )
            )
        return collector


@dataclass
class PublishCommitConfig:
    branch: str = ""
    base: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublishCommitConfig:
        return cls(branch=data.get("branch", ""), base=data.get("base", ""))

    def to_dict(self) -> dict[str, Any]:
        return _compact({"branch": self.branch, "base": self.base})


@dataclass
class PublishPRConfig:
    branch_template: str = ""
    base: str = ""
    title_template: str = ""
    body_template: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublishPRConfig:
        return cls(
            branch_template=data.get("branch_template", ""),
            base=data.get("base", ""),
            title_template=data.get("title_template", ""),
            body_template=data.get("body_template", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "branch_template": self.branch_template,
                "base": self.base,
                "title_template": self.title_template,
                "body_template": self.body_template,
            }
        )


@dataclass
class PublishConfig:
    commit: PublishCommitConfig | None = None
    pr: PublishPRConfig | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublishConfig:
        commit = data.get("commit")
        pr = data.get("pr")
        return cls(
            commit=PublishCommitConfig.from_dict(commit) if commit is not None else None,
            pr=PublishPRConfig.from_dict(pr) if pr is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.commit is not None:
            payload["commit"] = self.commit.to_dict()
        if self.pr is not None:
            payload["pr"] = self.pr.to_dict()
        return payload

    def validate(self) -> ErrorCollector:
        collector = ErrorCollector()
        if self.commit is not None and self.pr is not None:
            collector.add(
                ConfigError("invalid publish config: cannot define both 'commit' and 'pr' blocks")
            )
        elif self.commit is None and self.pr is None:
            self.pr = PublishPRConfig()
        return collector


@dataclass
class CommitAuthorConfig:
    name: str = ""
    email: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact({"name": self.name, "email": self.email})

    def validate(self) -> ErrorCollector:
        collector = ErrorCollector()
        if self.name and not self.email:
            collector.add(ConfigError("commit author specifies name, but no email"))
        if self.email and not self.name:
            collector.add(ConfigError("commit author specified email, but no name"))
        return collector


@dataclass
class CommitTemplateConfig:
    update: str = ""
    extras: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact({"update": self.update, "extras": self.extras})


@dataclass
class CommitConfig:
    author: CommitAuthorConfig = field(default_factory=CommitAuthorConfig)
    templates: CommitTemplateConfig = field(default_factory=CommitTemplateConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommitConfig:
        author = data.get("author") or {}
        templates = data.get("templates") or {}
        return cls(
            author=CommitAuthorConfig(name=author.get("name", ""), email=author.get("email", "")),
            templates=CommitTemplateConfig(
                update=templates.get("update", ""), extras=templates.get("extras", "")
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({"author": self.author.to_dict(), "templates": self.templates.to_dict()})

    def validate(self) -> ErrorCollector:
        return self.author.validate()


@dataclass
class ReleaseConfig:
    matches: list[str] = field(default_factory=list)
    ignores: list[str] = field(default_factory=list)
    strategy: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReleaseConfig:
        return cls(
            matches=list(data.get("matches") or []),
            ignores=list(data.get("ignores") or []),
            strategy=data.get("strategy", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {"matches": self.matches, "ignores": self.ignores, "strategy": self.strategy}
        )

    def validate(self) -> ErrorCollector:
        collector = ErrorCollector()
        # An unset strategy falls back to "default" when the pipeline runs.
        if self.strategy:
            try:
                UpdateStrategy.from_string(self.strategy)
            except UnsupportedStrategyError:
                supported = ", ".join(item.value for item in UpdateStrategy)
                collector.add(
                    ConfigError(
                        f"invalid release strategy '{self.strategy}', should be one of: {supported}"
                    )
                )
        return collector


@dataclass
class SearchReplace:
    search: str = ""
    replace: str = ""
    limit: int = 0

    def to_dict(self) -> dict[str, Any]:
        return _compact({"search": self.search, "replace": self.replace, "limit": self.limit or None})

    def validate(self) -> ErrorCollector:
        collector = ErrorCollector()
        if not self.search:
            collector.add(ConfigError("search and replace config has no search string set"))
        if not self.replace:
            collector.add(ConfigError("search and replace config has no replace string set"))
        if self.limit < 0:
            collector.add(ConfigError("search and replace config must have a non-negative limit"))
        return collector


@dataclass
class ExtrasConfig:
    path: str = ""
    updates: list[SearchReplace] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtrasConfig:
        return cls(
            path=data.get("path", ""),
            updates=[
                SearchReplace(
                    search=item.get("search", ""),
                    replace=item.get("replace", ""),
                    limit=item.get("limit", 0),
                )
                for item in data.get("updates") or []
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({"path": self.path, "updates": [u.to_dict() for u in self.updates]})

    def validate(self) -> ErrorCollector:
        collector = ErrorCollector()
        if self.path and not self.updates:
            collector.add(
                ConfigError("extras config specifies path but no options for search/replace updates")
            )
        elif not self.path and self.updates:
            collector.add(
                ConfigError("extras config specifies search/replace options, but no file path")
            )
        for index, update in enumerate(self.updates):
            errors = update.validate()
            if errors.has_errors():
                for err in errors:
                    collector.add(ConfigError(f"extras[{self.path}].updates[{index}]: {err}"))
        return collector


@dataclass
class Config:
    version: str = CONFIG_VERSION
    chart: ChartConfig | None = None
    publish: PublishConfig = field(default_factory=PublishConfig)
    commit: CommitConfig = field(default_factory=CommitConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    extras: list[ExtrasConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        chart = data.get("chart")
        return cls(
            version=str(data.get("version", "")),
            chart=ChartConfig.from_dict(chart) if chart is not None else None,
            publish=PublishConfig.from_dict(data.get("publish") or {}),
            commit=CommitConfig.from_dict(data.get("commit") or {}),
            release=ReleaseConfig.from_dict(data.get("release") or {}),
            extras=[ExtrasConfig.from_dict(item) for item in data.get("extras") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "version": self.version,
                "chart": self.chart.to_dict() if self.chart is not None else None,
                "publish": self.publish.to_dict(),
                "commit": self.commit.to_dict(),
                "release": self.release.to_dict(),
                "extras": [extra.to_dict() for extra in self.extras],
            }
        )

    def validate(self) -> None:
        """Check every section, raising an ``ErrorCollector`` of all failures."""
        collector = ErrorCollector()

        if self.version != CONFIG_VERSION:
            collector.add(ConfigError(f"using {CONFIG_VERSION} config parser for non {CONFIG_VERSION} config"))

        if self.chart is None:
            collector.add(ConfigError("required option 'chart' missing from config"))
        else:
            collector.merge(self.chart.validate())

        collector.merge(self.publish.validate())
        collector.merge(self.commit.validate())
        collector.merge(self.release.validate())
        for extra in self.extras:
            collector.merge(extra.validate())

        if collector.has_errors():
            raise collector


def load_config(data: dict[str, Any]) -> Config:
    """Build a Config from parsed YAML after checking it against the JSON schema."""
    validator = _schema_validator()
    errors = sorted(validator.iter_errors(data), key=lambda err: list(err.absolute_path))
    if errors:
        details = "\n".join(
            f"- {'.'.join(str(part) for part in err.absolute_path) or '<root>'}: {err.message}"
            for err in errors
        )
        raise ConfigError(f"config schema validation failed:\n{details}")
    return Config.from_dict(data)


def dump_config(config: Config) -> str:
    return yaml.safe_dump(config.to_dict(), sort_keys=False, default_flow_style=False)
