"""The extras stage: regex search/replace over additional repository files."""

from __future__ import annotations

import re

import jinja2
import structlog

from .client import ClientOptions
from .config import SearchReplace
from .context import File, RunContext
from .errors import ChartReleaserError
from .templates import TemplateError, render_string, template_values

log = structlog.get_logger(__name__)


class ExtrasError(ChartReleaserError):
    """Raised when an extras search pattern cannot be compiled."""


def apply_update(ctx: RunContext, contents: str, update: SearchReplace) -> str:
    """Return ``contents`` with the update applied.

    Raises ``ExtrasError`` or ``TemplateError`` when the search pattern or the
    replacement template is invalid. A limit of 0 replaces every match.
    """
    try:
        pattern = re.compile(update.search)
    except re.error as exc:
        raise ExtrasError(f"invalid search regex '{update.search}': {exc}") from exc
    try:
        replacement = render_string(update.replace, **template_values(ctx))
    except jinja2.TemplateError as exc:
        raise TemplateError("extras-replace", exc) from exc
    # Makes exactly `limit` replacements. A split-based limit of n made only n - 1.
    return pattern.sub(lambda _: replacement, contents, count=update.limit)


def run_extras(ctx: RunContext) -> None:
    opts = ClientOptions(repo_name=ctx.repository.name, repo_owner=ctx.repository.owner)

    for extra in ctx.config.extras:
        log.debug(
            "getting file contents",
            path=extra.path,
            repo_name=opts.repo_name,
            repo_owner=opts.repo_owner,
        )
        try:
            contents = ctx.client.get_file(opts, extra.path, timeout=ctx.remaining())
        except ChartReleaserError as exc:
            ctx.check_dry_run(exc)
            log.warning("failed to get contents for file -- skipping", path=extra.path)
            continue

        extra_file = File(path=extra.path, previous_contents=contents)
        for update in extra.updates:
            try:
                contents = apply_update(ctx, contents, update)
            except (ExtrasError, TemplateError) as exc:
                ctx.check_dry_run(exc)
                log.warning(
                    "failed to apply search/replace update -- skipping",
                    path=extra.path,
                    search=update.search,
                    error=str(exc),
                )
        extra_file.new_contents = contents

        if not extra_file.has_changes():
            log.warning(
                "no change detected to extras file",
                path=extra.path,
                repo_name=opts.repo_name,
                repo_owner=opts.repo_owner,
            )
        ctx.files.append(extra_file)
