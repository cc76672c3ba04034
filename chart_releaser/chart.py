"""The chart stage: read Chart.yaml from the repository and bump its versions."""

from __future__ import annotations

import posixpath
from typing import Any

import structlog
import yaml

from .client import ClientOptions
from .context import File, RunContext
from .errors import ChartReleaserError
from .semver import parse_version
from .strategies import UpdateContext, update_release

log = structlog.get_logger(__name__)

CHART_FILE_NAMES = ("Chart.yaml", "Chart.yml")
PLACEHOLDER_VERSION = "0.0.0"
PLACEHOLDER_NEW_VERSION = "0.1.0"


class ChartError(ChartReleaserError):
    """Raised when a Chart.yaml cannot be read or is missing required fields."""


def chart_file_path(sub_path: str) -> str:
    if sub_path.endswith(CHART_FILE_NAMES):
        return sub_path
    return posixpath.join(sub_path, "Chart.yaml")


def load_chart(raw: str, path: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ChartError(f"unable to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ChartError(f"chart file root must be a mapping/object: {path}")
    return data


def dump_chart(data: dict[str, Any]) -> str:
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)


def _field(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def run_chart(ctx: RunContext) -> None:
    path = chart_file_path(ctx.chart.sub_path)
    ctx.chart.file = File(path=path)

    opts = ClientOptions(repo_name=ctx.repository.name, repo_owner=ctx.repository.owner)
    log.debug("getting chart contents", path=path, repo=f"{opts.repo_owner}/{opts.repo_name}")
    raw = ctx.client.get_file(opts, path, timeout=ctx.remaining())

    meta = load_chart(raw, path)
    ctx.chart.file.previous_contents = dump_chart(meta)

    chart_version = _field(meta, "version")
    if not chart_version:
        ctx.check_dry_run(ChartError("chart does not specify a version"))
        chart_version = PLACEHOLDER_VERSION
        log.warning("dry-run: using placeholder for chart version", version=chart_version)

    app_version = _field(meta, "appVersion")
    if not app_version:
        ctx.check_dry_run(ChartError("chart does not specify an appVersion"))
        app_version = PLACEHOLDER_VERSION
        log.warning("dry-run: using placeholder for appVersion", appVersion=app_version)

    ctx.chart.previous_version = parse_version(chart_version)
    ctx.app.previous_version = parse_version(app_version)

    try:
        ctx.chart.new_version = update_release(
            UpdateContext(
                old_app_version=ctx.app.previous_version,
                new_app_version=ctx.app.new_version,
                old_chart_version=ctx.chart.previous_version,
                strategy=ctx.update_strategy,
            )
        )
    except ChartReleaserError as exc:
        ctx.check_dry_run(exc)
        ctx.chart.new_version = parse_version(PLACEHOLDER_NEW_VERSION)
        log.warning(
            "dry-run: using placeholder for new chart version",
            version=PLACEHOLDER_NEW_VERSION,
        )

    meta["version"] = str(ctx.chart.new_version)
    meta["appVersion"] = str(ctx.app.new_version)
    ctx.chart.file.new_contents = dump_chart(meta)
