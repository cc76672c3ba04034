"""Unified diff output for files changed by an update."""

from __future__ import annotations

import difflib
from typing import TextIO


def unified_diff(path: str, previous: str, new: str) -> list[str]:
    return list(
        difflib.unified_diff(
            previous.splitlines(),
            new.splitlines(),
            fromfile=f"a/{path}",
            tofile=f"b/{path}",
            lineterm="",
        )
    )


def print_diff(out: TextIO, path: str, previous: str, new: str) -> None:
    lines = unified_diff(path, previous, new)
    if not lines:
        print(f"--- {path}: no changes", file=out)
        return
    print("\n".join(lines), file=out)
