"""Command line interface for chart-releaser."""

from __future__ import annotations

import argparse
import sys
import traceback

from . import __version__
from .commands import (
    DEFAULT_TIMEOUT,
    UpdateOptions,
    render_init,
    render_version,
    run_check,
    run_format,
    run_update,
)
from .config import config_path, load_versioned
from .errors import ChartReleaserError, ConfigError, DeadlineExceededError, ErrorCollector
from .logs import configure_logging


class ExitCode:
    SUCCESS = 0
    FAILURE = 1
    USAGE = 2
    CONFIG = 3
    DRY_RUN_ERRORS = 4
    DEADLINE = 5


def _positive_seconds(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid timeout: {value}") from exc
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"timeout must be positive: {value}")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chart-releaser",
        description="Update a Helm Chart when a new application version is released",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    update = sub.add_parser("update", help="Update the Helm Chart for a new project release")
    update.add_argument("path", nargs="?", default="", help="Config file or directory")
    update.add_argument(
        "--dry-run", action="store_true", help="Run the command without side effects"
    )
    update.add_argument(
        "--allow-dirty",
        action="store_true",
        help="Do not fail if the git repo is in a dirty state",
    )
    update.add_argument(
        "--diff", action="store_true", help="Show the diff for files modified by the command"
    )
    update.add_argument(
        "--timeout",
        type=_positive_seconds,
        default=DEFAULT_TIMEOUT,
        metavar="SECONDS",
        help="Timeout for the entire update process",
    )

    check = sub.add_parser("check", help="Check if a configuration file is valid")
    check.add_argument("path", nargs="?", default="", help="Config file or directory")
    check.add_argument(
        "--skip-env",
        action="store_true",
        help="Skip checks for expected environment variables",
    )

    fmt = sub.add_parser("fmt", help="Format a configuration file")
    fmt.add_argument("path", nargs="?", default="", help="Config file or directory")
    fmt.add_argument(
        "--no-header",
        action="store_true",
        help="Exclude the header comment when formatting",
    )

    init = sub.add_parser("init", help="Generate a new .chartreleaser.yml config file")
    init.add_argument("directory", nargs="?", default=".", help="Directory to write the file to")
    init.add_argument("--chart", default="", help="The name of the chart directory")
    init.add_argument(
        "--path", default="", help="The subdirectory within the repo containing the chart"
    )
    init.add_argument("--github-owner", default="", help="Owner of the GitHub repository")
    init.add_argument("--github-repo", default="", help="Name of the GitHub repository")
    init.add_argument("--author", default="", help="Name of the commit author")
    init.add_argument("--email", default="", help="Email of the commit author")

    version = sub.add_parser("version", help="Print the version info of chart-releaser")
    version.add_argument(
        "--latest", action="store_true", help="Also print the latest released version"
    )
    return parser


def _cmd_update(args: argparse.Namespace) -> int:
    versioned = load_versioned(args.path)
    options = UpdateOptions(
        allow_dirty=args.allow_dirty,
        dry_run=args.dry_run,
        show_diff=args.diff,
        timeout=args.timeout,
    )
    try:
        run_update(versioned, options)
    except ErrorCollector as errors:
        if args.dry_run:
            return ExitCode.DRY_RUN_ERRORS
        print(f"config validation failed:{errors}", end="")
        return ExitCode.CONFIG
    return ExitCode.SUCCESS


def _cmd_check(args: argparse.Namespace) -> int:
    versioned = load_versioned(args.path)
    try:
        run_check(versioned, skip_env=args.skip_env)
    except ErrorCollector as errors:
        print(f"config validation failed:{errors}", end="")
        return ExitCode.CONFIG
    print(f"successfully loaded {versioned.version} config file ({versioned.path})")
    return ExitCode.SUCCESS


def _cmd_fmt(args: argparse.Namespace) -> int:
    path = config_path(args.path)
    versioned = load_versioned(path)
    run_format(versioned, path, no_header=args.no_header)
    return ExitCode.SUCCESS


def _cmd_init(args: argparse.Namespace) -> int:
    target = render_init(
        args.directory,
        chart=args.chart,
        path=args.path,
        github_owner=args.github_owner,
        github_repo=args.github_repo,
        author=args.author,
        email=args.email,
    )
    print(f"created {target}")
    return ExitCode.SUCCESS


def _cmd_version(args: argparse.Namespace) -> int:
    print(render_version(check_latest=args.latest))
    return ExitCode.SUCCESS


COMMANDS = {
    "update": _cmd_update,
    "check": _cmd_check,
    "fmt": _cmd_fmt,
    "init": _cmd_init,
    "version": _cmd_version,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(debug=args.debug)

    try:
        return COMMANDS[args.command](args)
    except DeadlineExceededError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return ExitCode.DEADLINE
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return ExitCode.CONFIG
    except ChartReleaserError as exc:
        if args.debug:
            traceback.print_exc()
        print(f"error: {exc}", file=sys.stderr)
        return ExitCode.FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
