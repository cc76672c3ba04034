"""The publish stage: push the updated chart files to the repository."""

from __future__ import annotations

import structlog

from .client import ClientOptions
from .context import RunContext
from .errors import ChartReleaserError
from .strategies import PublishStrategy

log = structlog.get_logger(__name__)


class PublishError(ChartReleaserError):
    """Raised when changes cannot be published."""


class NoChartChangesError(PublishError):
    def __init__(self) -> None:
        super().__init__("chart file has no changes")


def release_allowed(ctx: RunContext) -> bool:
    """Check the tag against the release match and ignore constraints.

    During a dry run unmet constraints are only reported.
    """
    tag = ctx.git.tag
    for match in ctx.release.matches:
        if match.search(tag) is None:
            if ctx.dry_run:
                log.warning(
                    f"dry-run: tag release ({tag}) does not match release constraint '{match.pattern}'"
                )
                continue
            log.info(
                f"tag release ({tag}) does not match release constraint '{match.pattern}': will not update"
            )
            return False

    for ignore in ctx.release.ignores:
        if ignore.search(tag) is not None:
            if ctx.dry_run:
                log.warning(
                    f"dry-run: tag release ({tag}) matches release ignore constraint '{ignore.pattern}'"
                )
                continue
            log.info(
                f"tag release ({tag}) matches release ignore constraint '{ignore.pattern}': will not update"
            )
            return False
    return True


def _client_options(ctx: RunContext) -> ClientOptions:
    return ClientOptions(
        ref=ctx.git.ref,
        base=ctx.git.base,
        repo_name=ctx.repository.name,
        repo_owner=ctx.repository.owner,
        author_name=ctx.author.name,
        author_email=ctx.author.email,
    )


def publish_commit(ctx: RunContext) -> None:
    opts = _client_options(ctx)

    if not ctx.chart.file.has_changes():
        log.error("chart has no changes - will not update")
        raise NoChartChangesError()

    if opts.normalized().ref != opts.normalized().base:
        ctx.client.create_ref(opts, timeout=ctx.remaining())

    ctx.client.update_file(
        opts,
        ctx.chart.file.path,
        ctx.release.update_commit_msg,
        ctx.chart.file.new_contents,
        timeout=ctx.remaining(),
    )

    for changed in ctx.files:
        if not changed.has_changes():
            log.warning("file has no changes - will not update", path=changed.path)
            continue
        ctx.client.update_file(
            opts,
            changed.path,
            ctx.release.update_commit_msg,
            changed.new_contents,
            timeout=ctx.remaining(),
        )


def publish_pull_request(ctx: RunContext) -> None:
    publish_commit(ctx)
    log.debug(
        "publish: creating pull request",
        title=ctx.release.pr_title,
        body=ctx.release.pr_body,
    )
    ctx.client.create_pull_request(
        _client_options(ctx),
        ctx.release.pr_title,
        ctx.release.pr_body,
        timeout=ctx.remaining(),
    )


PUBLISHERS = {
    PublishStrategy.COMMIT: publish_commit,
    PublishStrategy.PULL_REQUEST: publish_pull_request,
}


def run_publish(ctx: RunContext) -> None:
    if not release_allowed(ctx):
        return

    if ctx.dry_run:
        log.info("dry-run: skipping publish")
        return

    publisher = PUBLISHERS.get(ctx.publish_strategy)
    if publisher is None:
        log.error("unsupported publish strategy specified", strategy=str(ctx.publish_strategy))
        raise PublishError(f"unsupported publish strategy specified: {ctx.publish_strategy}")
    publisher(ctx)
