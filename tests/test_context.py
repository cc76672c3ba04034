from __future__ import annotations

import io
import time

import pytest

from chart_releaser.context import (
    File,
    RepoType,
    RunContext,
    new_context,
    parse_repository,
)
from chart_releaser.errors import ChartReleaserError, DeadlineExceededError
from chart_releaser.semver import parse_version


def test_check_dry_run_strict_reraises() -> None:
    ctx = RunContext(out=io.StringIO())
    err = ChartReleaserError("boom")
    with pytest.raises(ChartReleaserError) as excinfo:
        ctx.check_dry_run(err)
    assert excinfo.value is err
    assert ctx.errors() is None


def test_check_dry_run_permissive_records() -> None:
    ctx = RunContext(out=io.StringIO(), dry_run=True)
    assert ctx.check_dry_run(ChartReleaserError("one")) is None
    ctx.check_dry_run(ChartReleaserError("two"))

    errors = ctx.errors()
    assert errors is not None
    assert [str(err) for err in errors] == ["one", "two"]


def test_print_errors() -> None:
    ctx = RunContext(out=io.StringIO(), dry_run=True)
    ctx.print_errors()
    assert ctx.out.getvalue() == "dry-run completed without errors\n"

    ctx = RunContext(out=io.StringIO(), dry_run=True)
    ctx.check_dry_run(ChartReleaserError("bad tag"))
    ctx.print_errors()
    assert ctx.out.getvalue() == "\ndry-run completed with errors\nErrors:\n • bad tag\n\n"


def test_deadline() -> None:
    ctx = new_context(None, timeout=60)
    remaining = ctx.remaining()
    assert remaining is not None and 0 < remaining <= 60

    ctx.deadline = time.monotonic() - 1
    with pytest.raises(DeadlineExceededError):
        ctx.remaining()


def test_no_deadline() -> None:
    assert new_context(None).remaining() is None


def test_dump_masks_token() -> None:
    ctx = RunContext(out=io.StringIO(), token="ghp_secretvalue", dry_run=True)
    ctx.chart.new_version = parse_version("1.2.4")
    ctx.dump()

    output = ctx.out.getvalue()
    assert "=== Context ===" in output
    assert "ghp_****" in output
    assert "secretvalue" not in output
    assert "'1.2.4'" in output


def test_file_has_changes() -> None:
    assert File(path="a", previous_contents="x", new_contents="y").has_changes()
    assert not File(path="a", previous_contents="x", new_contents="x").has_changes()


@pytest.mark.parametrize(
    "repo, owner, name",
    [
        ("github.com/example/charts", "example", "charts"),
        ("github/example/charts", "example", "charts"),
        ("example/charts", "example", "charts"),
    ],
)
def test_parse_repository(repo: str, owner: str, name: str) -> None:
    repository = parse_repository(repo)
    assert repository.type is RepoType.GITHUB
    assert (repository.owner, repository.name) == (owner, name)


@pytest.mark.parametrize("repo", ["charts", "a/b/c/d", "gitlab.com/example/charts"])
def test_parse_repository_errors(repo: str) -> None:
    with pytest.raises(ValueError):
        parse_repository(repo)
