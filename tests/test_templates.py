from __future__ import annotations

import pytest

from chart_releaser.context import RunContext
from chart_releaser.semver import parse_version
from chart_releaser.templates import (
    CONFIG_FILE_TEMPLATE,
    DRY_RUN_STAND_IN,
    TemplateError,
    render_string,
    render_template,
)


def test_render_template(ctx: RunContext) -> None:
    ctx.chart.name = "test-chart"
    ctx.chart.new_version = parse_version("1.2.4")
    assert render_template(ctx, "branch", "release/{{ chart.name }}-{{ chart.new_version }}") == (
        "release/test-chart-1.2.4"
    )


def test_render_template_exposes_dry_run(dry_ctx: RunContext) -> None:
    assert render_template(dry_ctx, "flag", "{{ 'yes' if dry_run else 'no' }}") == "yes"


@pytest.mark.parametrize("source", ["{{ chart.name ", "{{ missing.value }}"])
def test_render_template_strict_failure(ctx: RunContext, source: str) -> None:
    with pytest.raises(TemplateError, match="template pr-title"):
        render_template(ctx, "pr-title", source)


@pytest.mark.parametrize("source", ["{{ chart.name ", "{{ missing.value }}"])
def test_render_template_dry_run_stand_in(dry_ctx: RunContext, source: str) -> None:
    assert render_template(dry_ctx, "pr-title", source) == DRY_RUN_STAND_IN
    assert dry_ctx.errors().count() == 1


@pytest.mark.parametrize(
    "path, expected_path_line",
    [("charts/app", "  path: charts/app\n"), ("", None)],
)
def test_config_file_template(path: str, expected_path_line: str | None) -> None:
    text = render_string(
        CONFIG_FILE_TEMPLATE,
        header="# header",
        chart="app",
        github_owner="example",
        github_repo="charts",
        path=path,
        author_name="Release Bot",
        author_email="bot@example.com",
    )
    assert text.startswith("# header\nversion: v1\nchart:\n  name: app\n")
    assert "  repo: github.com/example/charts\n" in text
    if expected_path_line is None:
        assert "path:" not in text
        assert "  repo: github.com/example/charts\ncommit:\n" in text
    else:
        assert expected_path_line in text
    assert text.endswith("    email: bot@example.com\n")
