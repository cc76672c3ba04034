"""Thin wrappers around the local git binary."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import structlog

from .errors import ChartReleaserError, DeadlineExceededError

log = structlog.get_logger(__name__)


class GitError(ChartReleaserError):
    """Raised when a git command fails."""


def bin_exists(name: str) -> bool:
    return shutil.which(name) is not None


def run_command(
    args: list[str],
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> str:
    log.debug("running command", command=" ".join(args))
    try:
        completed = subprocess.run(
            args,
            cwd=str(cwd) if cwd is not None else None,
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise DeadlineExceededError(f"command timed out: {' '.join(args)}") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or exc.stdout or "").strip()
        raise GitError(f"command failed ({exc.returncode}): {' '.join(args)}: {detail}") from exc
    except OSError as exc:
        raise GitError(f"unable to run {args[0]}: {exc}") from exc
    return completed.stdout


def _git(args: list[str], cwd: Path | None, timeout: float | None) -> str:
    return run_command(["git", *args], cwd=cwd, timeout=timeout).strip()


def in_repo(cwd: Path | None = None, timeout: float | None = None) -> bool:
    try:
        return _git(["rev-parse", "--is-inside-work-tree"], cwd, timeout) == "true"
    except GitError:
        return False


def is_dirty(cwd: Path | None = None, timeout: float | None = None) -> tuple[bool, str]:
    """Check for uncommitted changes, returning the porcelain status output."""
    try:
        out = run_command(["git", "status", "--porcelain"], cwd=cwd, timeout=timeout)
    except GitError as exc:
        return True, str(exc)
    if out.strip():
        return True, out
    return False, ""


def latest_tag(cwd: Path | None = None, timeout: float | None = None) -> str:
    return _git(["describe", "--tags", "--abbrev=0"], cwd, timeout)


def user_name(cwd: Path | None = None, timeout: float | None = None) -> str:
    return _git(["config", "user.name"], cwd, timeout)


def user_email(cwd: Path | None = None, timeout: float | None = None) -> str:
    return _git(["config", "user.email"], cwd, timeout)
