from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any

import pytest
import structlog

from chart_releaser.client import ClientError, ClientOptions
from chart_releaser.config import Config, load_config
from chart_releaser.context import RepoType, Repository, RunContext


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()


@dataclass
class FakeClient:
    """In-memory RepositoryClient.

    Each ``*_errors`` list is consumed front to back, one error per call; a
    ``None`` entry lets that call succeed.
    """

    files: dict[str, str] = field(default_factory=dict)
    get_file_errors: list[Exception | None] = field(default_factory=list)
    update_file_errors: list[Exception | None] = field(default_factory=list)
    create_ref_errors: list[Exception | None] = field(default_factory=list)
    create_pull_request_errors: list[Exception | None] = field(default_factory=list)
    calls: list[tuple[str, Any]] = field(default_factory=list)

    @staticmethod
    def _next_error(errors: list[Exception | None]) -> None:
        if errors:
            err = errors.pop(0)
            if err is not None:
                raise err

    def get_file(self, opts: ClientOptions, path: str, *, timeout: float | None = None) -> str:
        self.calls.append(("get_file", path))
        self._next_error(self.get_file_errors)
        if path not in self.files:
            raise ClientError(f"file not found in remote repo: {path}")
        return self.files[path]

    def update_file(
        self,
        opts: ClientOptions,
        path: str,
        message: str,
        contents: str,
        *,
        timeout: float | None = None,
    ) -> None:
        self.calls.append(("update_file", (opts.ref, path, message)))
        self._next_error(self.update_file_errors)
        self.files[path] = contents

    def create_ref(self, opts: ClientOptions, *, timeout: float | None = None) -> None:
        self.calls.append(("create_ref", (opts.ref, opts.base)))
        self._next_error(self.create_ref_errors)

    def create_pull_request(
        self,
        opts: ClientOptions,
        title: str,
        body: str,
        *,
        timeout: float | None = None,
    ) -> None:
        self.calls.append(("create_pull_request", (opts.ref, opts.base, title, body)))
        self._next_error(self.create_pull_request_errors)

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


MINIMAL_CONFIG: dict[str, Any] = {
    "version": "v1",
    "chart": {"name": "test-chart", "repo": "github.com/example/charts"},
}


@pytest.fixture
def config_data() -> dict[str, Any]:
    return {
        "version": "v1",
        "chart": {
            "name": "test-chart",
            "repo": "github.com/example/charts",
            "path": "charts/test-chart",
        },
        "commit": {"author": {"name": "Release Bot", "email": "bot@example.com"}},
    }


@pytest.fixture
def config(config_data: dict[str, Any]) -> Config:
    return load_config(config_data)


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def ctx(config: Config, client: FakeClient) -> RunContext:
    context = RunContext(config=config, out=io.StringIO())
    context.client = client
    context.repository = Repository(type=RepoType.GITHUB, owner="example", name="charts")
    return context


@pytest.fixture
def dry_ctx(ctx: RunContext) -> RunContext:
    ctx.dry_run = True
    return ctx
