"""Implementations of the update, check, fmt, init and version commands."""

from __future__ import annotations

import platform
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import structlog

from . import __version__, gitutils
from .client import latest_release_tag
from .config import (
    CONFIG_VERSION,
    DEFAULT_FILE,
    Config,
    ConfigExistsError,
    VersionedConfig,
    dump_config,
    load_config,
)
from .context import new_context, parse_repository
from .errors import ConfigError, ErrorCollector
from .pipeline import Pipeline
from .semver import compare, parse_version
from .stages import UPDATE_PIPELINE, run_env
from .templates import (
    CONFIG_FILE_TEMPLATE,
    CONFIG_HEADER_COMMENT,
    LATEST_VERSION_TEMPLATE,
    VERSION_TEMPLATE,
    render_string,
)

log = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 300.0
RELEASE_OWNER = "edaniszewski"
RELEASE_REPO = "chart-releaser"


@dataclass
class UpdateOptions:
    allow_dirty: bool = False
    dry_run: bool = False
    show_diff: bool = False
    timeout: float | None = DEFAULT_TIMEOUT


def _load_v1(versioned: VersionedConfig) -> Config:
    if versioned.version != CONFIG_VERSION:
        raise ConfigError(f"unsupported config version: {versioned.version}")
    return load_config(versioned.data)


def run_update(
    versioned: VersionedConfig,
    options: UpdateOptions,
    *,
    out: TextIO | None = None,
    pipeline: Pipeline = UPDATE_PIPELINE,
) -> None:
    """Run the update pipeline for a loaded config file.

    A dry run that recorded errors raises the run's ``ErrorCollector`` once
    the pipeline has finished and printed its summary.
    """
    start = time.monotonic()
    log.info("starting chart update...")

    config = _load_v1(versioned)
    log.debug("loaded configuration", config=config.to_dict())

    try:
        config.validate()
    except ErrorCollector as errors:
        if not options.dry_run:
            raise
        log.warning("dry-run: failed config validation", error=str(errors))

    ctx = new_context(config, options.timeout)
    ctx.allow_dirty = options.allow_dirty
    ctx.dry_run = options.dry_run
    ctx.show_diff = options.show_diff
    if out is not None:
        ctx.out = out

    pipeline.run(ctx)

    errors = ctx.errors()
    if errors is not None:
        raise errors
    log.debug(f"update completed after {time.monotonic() - start:0.3f}s")


def run_check(versioned: VersionedConfig, skip_env: bool = False) -> Config:
    config = _load_v1(versioned)

    if skip_env:
        log.debug("skipping check for env vars")
    else:
        if config.chart is None:
            raise ConfigError("required option 'chart' missing from config")
        ctx = new_context(config)
        try:
            ctx.repository = parse_repository(config.chart.repo)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        run_env(ctx)

    config.validate()
    return config


def run_format(versioned: VersionedConfig, path: Path, no_header: bool = False) -> str:
    """Rewrite the config file at ``path`` in normalized form and return the text."""
    config = _load_v1(versioned)
    text = dump_config(config)
    if not no_header:
        text = f"{CONFIG_HEADER_COMMENT}\n{text}"
    path.write_text(text, encoding="utf-8")
    return text


def render_init(
    directory: str | Path = ".",
    *,
    chart: str = "",
    path: str = "",
    github_owner: str = "",
    github_repo: str = "",
    author: str = "",
    email: str = "",
) -> Path:
    """Write a starter config file into ``directory`` and return its path."""
    root = Path(directory).resolve()
    target = root / DEFAULT_FILE
    if target.exists():
        raise ConfigExistsError(target)

    chart = chart or root.name
    if not chart:
        raise ConfigError("no chart specified")
    if not github_owner:
        raise ConfigError("no github owner specified")
    if not github_repo:
        raise ConfigError("no github name specified")

    if not author:
        log.debug("no author specified, checking git config")
        author = gitutils.user_name(cwd=root)
    if not email:
        log.debug("no email specified, checking git config")
        email = gitutils.user_email(cwd=root)

    text = render_string(
        CONFIG_FILE_TEMPLATE,
        header=CONFIG_HEADER_COMMENT,
        chart=chart,
        path=path,
        github_owner=github_owner,
        github_repo=github_repo,
        author_name=author,
        author_email=email,
    )
    target.write_text(text, encoding="utf-8")
    return target


def render_version(check_latest: bool = False) -> str:
    text = render_string(
        VERSION_TEMPLATE,
        version=__version__,
        python=platform.python_version(),
        os=sys.platform,
        arch=platform.machine(),
    )
    if not check_latest:
        return text

    latest = latest_release_tag(RELEASE_OWNER, RELEASE_REPO)
    if compare(parse_version(__version__), parse_version(latest)) < 0:
        status = "A new version of chart-releaser is available"
    else:
        status = "Installed version is latest"
    latest_text = render_string(
        LATEST_VERSION_TEMPLATE, status=status, latest=latest, installed=__version__
    )
    return f"{text}\n\n{latest_text}"
