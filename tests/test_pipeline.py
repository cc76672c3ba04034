from __future__ import annotations

import io

import pytest

from chart_releaser.context import PipelineStatus, RunContext
from chart_releaser.errors import ChartReleaserError
from chart_releaser.pipeline import Pipeline, Stage
from chart_releaser.stages import UPDATE_PIPELINE


def _recorder(name: str, seen: list[str]) -> Stage:
    def run(ctx: RunContext) -> None:
        seen.append(name)

    return Stage(name=name, description=f"running {name}", run=run)


def test_runs_stages_in_order() -> None:
    seen: list[str] = []
    pipeline = Pipeline(_recorder(name, seen) for name in ("a", "b", "c"))
    ctx = RunContext(out=io.StringIO())

    pipeline.run(ctx)

    assert seen == ["a", "b", "c"]
    assert ctx.status is PipelineStatus.COMPLETED
    assert ctx.current_stage == "c"
    assert ctx.out.getvalue() == ""


def test_stops_at_first_failure() -> None:
    seen: list[str] = []

    def fail(ctx: RunContext) -> None:
        raise ChartReleaserError("stage failed")

    pipeline = Pipeline(
        [_recorder("a", seen), Stage("b", "failing", fail), _recorder("c", seen)]
    )
    ctx = RunContext(out=io.StringIO())

    with pytest.raises(ChartReleaserError, match="stage failed"):
        pipeline.run(ctx)

    assert seen == ["a"]
    assert ctx.status is PipelineStatus.FAILED
    assert ctx.current_stage == "b"


def test_dry_run_tolerated_errors_complete_with_summary() -> None:
    def tolerate(ctx: RunContext) -> None:
        ctx.check_dry_run(ChartReleaserError("recorded"))

    seen: list[str] = []
    pipeline = Pipeline([Stage("a", "tolerating", tolerate), _recorder("b", seen)])
    ctx = RunContext(out=io.StringIO(), dry_run=True)

    pipeline.run(ctx)

    assert seen == ["b"]
    assert ctx.status is PipelineStatus.COMPLETED
    output = ctx.out.getvalue()
    assert "=== Context ===" in output
    assert output.endswith("dry-run completed with errors\nErrors:\n • recorded\n\n")


def test_update_pipeline_order() -> None:
    assert UPDATE_PIPELINE.names() == [
        "setup",
        "config",
        "env",
        "git",
        "client",
        "chart",
        "extras",
        "render",
        "publish",
        "diff",
    ]
    assert str(UPDATE_PIPELINE.stages[0]) == "performing pre-flight setup and checks"
    assert len(UPDATE_PIPELINE) == 10
