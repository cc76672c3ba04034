"""Update pipeline stages and the ordered update pipeline."""

from __future__ import annotations

import os
import re
from typing import Callable

import structlog

from . import gitutils, templates
from .chart import run_chart
from .client import ClientError, GitHubClient
from .config import PublishPRConfig
from .context import RepoType, RunContext, parse_repository
from .diff import print_diff
from .errors import ChartReleaserError, DeadlineExceededError
from .extras import run_extras
from .pipeline import Pipeline, Stage
from .publish import run_publish
from .semver import parse_version
from .strategies import PublishStrategy, UpdateStrategy

log = structlog.get_logger(__name__)

GITHUB_TOKEN = "GITHUB_TOKEN"
DEFAULT_BASE_BRANCH = "master"
DRY_RUN_TAG = "0.0.0"
DRY_RUN_AUTHOR_NAME = "dry-run-user"
DRY_RUN_AUTHOR_EMAIL = "dry-run@commiter.dev"


class StageError(ChartReleaserError):
    """Raised when a stage cannot run with the context it was given."""


class GitNotFoundError(StageError):
    def __init__(self) -> None:
        super().__init__("git not found on PATH")


class NotInRepoError(StageError):
    def __init__(self) -> None:
        super().__init__("current directory is not a git repository")


class DirtyGitError(StageError):
    def __init__(self) -> None:
        super().__init__("git is in a dirty state")


class GithubTokenNotSetError(StageError):
    def __init__(self) -> None:
        super().__init__(f"{GITHUB_TOKEN} environment variable not set")


def _require_repo_type(ctx: RunContext, stage: str) -> RepoType:
    if ctx.repository.type is None:
        raise StageError(f"repository type not set prior to running '{stage}' stage")
    return ctx.repository.type


def run_setup(ctx: RunContext) -> None:
    log.debug("checking if git exists on PATH")
    if not gitutils.bin_exists("git"):
        raise GitNotFoundError()

    log.debug("checking if directory is a git repo")
    try:
        inside = gitutils.in_repo(timeout=ctx.remaining())
    except DeadlineExceededError as exc:
        ctx.check_dry_run(exc)
        inside = True
    if not inside:
        ctx.check_dry_run(NotInRepoError())

    log.debug("checking if git is in a clean state")
    try:
        dirty, out = gitutils.is_dirty(timeout=ctx.remaining())
    except DeadlineExceededError as exc:
        ctx.check_dry_run(exc)
        return
    if not dirty:
        return
    if ctx.allow_dirty:
        log.info("allowing git to be in a dirty state")
        return
    if not ctx.dry_run:
        log.error("dirty git state detected", status=out)
    ctx.check_dry_run(DirtyGitError())


def _load_update_strategy(ctx: RunContext) -> None:
    log.debug("loading upgrade strategy context")
    name = ctx.config.release.strategy
    if not name:
        log.info("no release strategy configured, using default", strategy="default")
        name = UpdateStrategy.DEFAULT.value
    ctx.update_strategy = UpdateStrategy.from_string(name)


def _load_publish_strategy(ctx: RunContext) -> None:
    log.debug("loading publish strategy context")
    if ctx.config.publish.commit is not None:
        ctx.publish_strategy = PublishStrategy.COMMIT
    else:
        if ctx.config.publish.pr is None:
            log.debug(
                "no publish config defined, using default publish strategy",
                default=str(PublishStrategy.PULL_REQUEST),
            )
        ctx.publish_strategy = PublishStrategy.PULL_REQUEST


def _load_template_strings(ctx: RunContext) -> None:
    config = ctx.config
    ctx.release.update_commit_msg = (
        config.commit.templates.update or templates.DEFAULT_UPDATE_COMMIT_MESSAGE
    )

    if ctx.publish_strategy is PublishStrategy.COMMIT:
        commit = config.publish.commit
        ctx.git.ref = commit.branch or DEFAULT_BASE_BRANCH
        ctx.git.base = commit.base or DEFAULT_BASE_BRANCH
    elif ctx.publish_strategy is PublishStrategy.PULL_REQUEST:
        pr = config.publish.pr or PublishPRConfig()
        ctx.git.ref = pr.branch_template or templates.DEFAULT_BRANCH_NAME
        ctx.git.base = pr.base or DEFAULT_BASE_BRANCH
        ctx.release.pr_title = pr.title_template or templates.DEFAULT_PULL_REQUEST_TITLE
        ctx.release.pr_body = pr.body_template or templates.DEFAULT_PULL_REQUEST_BODY
    else:
        raise StageError(f"unsupported publish strategy: {ctx.publish_strategy}")


def _load_author(ctx: RunContext) -> None:
    log.debug("loading author context")
    author = ctx.config.commit.author

    name = author.name
    if not name:
        log.debug("no commit author set, discovering from git config")
        try:
            name = gitutils.user_name(timeout=ctx.remaining())
        except (gitutils.GitError, DeadlineExceededError) as exc:
            if not ctx.dry_run:
                log.error("unable to determine committer name - must be set explicitly")
            ctx.check_dry_run(exc)
            log.info("dry-run: using stand-in for committer name")
            name = DRY_RUN_AUTHOR_NAME
    ctx.author.name = name

    email = author.email
    if not email:
        log.debug("no commit email set, discovering from git config")
        try:
            email = gitutils.user_email(timeout=ctx.remaining())
        except (gitutils.GitError, DeadlineExceededError) as exc:
            if not ctx.dry_run:
                log.error("unable to determine committer email - must be set explicitly")
            ctx.check_dry_run(exc)
            log.info("dry-run: using stand-in for committer email")
            email = DRY_RUN_AUTHOR_EMAIL
    ctx.author.email = email


def _compile_constraints(ctx: RunContext, patterns: list[str], kind: str) -> list[re.Pattern[str]]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            ctx.check_dry_run(StageError(f"invalid release {kind} regex '{pattern}': {exc}"))
            log.warning(f"dry-run: failed to compile release {kind} regex '{pattern}', using stand-in")
            compiled.append(re.compile(templates.DRY_RUN_STAND_IN))
    return compiled


def run_config(ctx: RunContext) -> None:
    if ctx.config is None:
        raise StageError("no configuration loaded prior to running 'config' stage")

    _load_update_strategy(ctx)
    _load_publish_strategy(ctx)
    _load_template_strings(ctx)
    _load_author(ctx)

    log.debug("loading chart context")
    chart = ctx.config.chart
    ctx.chart.name = chart.name if chart is not None else ""
    ctx.chart.sub_path = chart.path if chart is not None else ""

    log.debug("loading repository context")
    try:
        ctx.repository = parse_repository(chart.repo if chart is not None else "")
    except ValueError as exc:
        raise StageError(str(exc)) from exc

    log.debug("loading release constraints")
    ctx.release.matches = _compile_constraints(ctx, ctx.config.release.matches, "match")
    ctx.release.ignores = _compile_constraints(ctx, ctx.config.release.ignores, "ignore")


def run_env(ctx: RunContext) -> None:
    repo_type = _require_repo_type(ctx, "env")
    if repo_type is not RepoType.GITHUB:
        log.error("unsupported repository type specified", type=str(repo_type))
        raise StageError(f"unsupported repository type: {repo_type}")

    token = os.environ.get(GITHUB_TOKEN)
    if token is None:
        ctx.check_dry_run(GithubTokenNotSetError())
        log.warning("github token not detected - using no token for dry-run")
        token = ""
    ctx.token = token


def run_git(ctx: RunContext) -> None:
    log.debug("looking up git tag")
    try:
        tag = gitutils.latest_tag(timeout=ctx.remaining())
    except (gitutils.GitError, DeadlineExceededError) as exc:
        ctx.check_dry_run(exc)
        tag = DRY_RUN_TAG
        log.info("using fake tag for dry-run", tag=tag)
    log.debug("got git tag", tag=tag)
    ctx.git.tag = tag
    ctx.app.new_version = parse_version(tag)


def run_client(ctx: RunContext) -> None:
    repo_type = _require_repo_type(ctx, "client")
    if repo_type is not RepoType.GITHUB:
        log.error("unsupported repository type specified", type=str(repo_type))
        raise StageError(f"unsupported repository type: {repo_type}")
    try:
        ctx.client = GitHubClient(ctx.token)
    except ClientError as exc:
        ctx.check_dry_run(exc)
        log.warning("dry-run: using anonymous github client")
        ctx.client = GitHubClient(ctx.token, anonymous=True)


def run_render(ctx: RunContext) -> None:
    ctx.git.ref = templates.render_template(ctx, "git-ref", ctx.git.ref)
    ctx.git.base = templates.render_template(ctx, "git-base", ctx.git.base)
    ctx.release.update_commit_msg = templates.render_template(
        ctx, "update-commit", ctx.release.update_commit_msg
    )
    ctx.release.pr_title = templates.render_template(ctx, "pr-title", ctx.release.pr_title)
    ctx.release.pr_body = templates.render_template(ctx, "pr-body", ctx.release.pr_body)


def run_diff(ctx: RunContext) -> None:
    if not ctx.show_diff:
        log.info("diff stage not enabled - skipping")
        return

    print("+----start diff", file=ctx.out)
    print_diff(
        ctx.out,
        "Chart.yaml",
        ctx.chart.file.previous_contents,
        ctx.chart.file.new_contents,
    )
    for extra in ctx.files:
        print_diff(ctx.out, extra.path, extra.previous_contents, extra.new_contents)
    print("+----end diff", file=ctx.out)


HANDLERS: dict[str, Callable[[RunContext], None]] = {
    "setup": run_setup,
    "config": run_config,
    "env": run_env,
    "git": run_git,
    "client": run_client,
    "chart": run_chart,
    "extras": run_extras,
    "render": run_render,
    "publish": run_publish,
    "diff": run_diff,
}

DESCRIPTIONS: dict[str, str] = {
    "setup": "performing pre-flight setup and checks",
    "config": "loading context configuration",
    "env": "loading environment variables",
    "git": "parsing git information",
    "client": "creating repository client",
    "chart": "updating helm chart",
    "extras": "updating additional chart files",
    "render": "rendering templates",
    "publish": "publishing changes",
    "diff": "displaying changes to chart files",
}

UPDATE_PIPELINE = Pipeline(
    Stage(name=name, description=DESCRIPTIONS[name], run=handler)
    for name, handler in HANDLERS.items()
)
