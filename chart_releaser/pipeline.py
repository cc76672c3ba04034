"""Ordered stage execution over a single run context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

import structlog

from .context import PipelineStatus, RunContext

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Stage:
    name: str
    description: str
    run: Callable[[RunContext], None]

    def __str__(self) -> str:
        return self.description


class Pipeline:
    """Runs stages in order, stopping at the first stage that raises.

    A stage that can tolerate its own failure during a dry run routes the
    error through ``RunContext.check_dry_run`` before returning, so any
    exception escaping a stage aborts the run.
    """

    def __init__(self, stages: Iterable[Stage]) -> None:
        self.stages: tuple[Stage, ...] = tuple(stages)

    def __len__(self) -> int:
        return len(self.stages)

    def names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    def run(self, ctx: RunContext) -> None:
        ctx.status = PipelineStatus.RUNNING
        for stage in self.stages:
            ctx.current_stage = stage.name
            log.info(f"{stage.name.upper()} - {stage.description}")
            try:
                stage.run(ctx)
            except Exception as exc:
                ctx.status = PipelineStatus.FAILED
                log.error(
                    "failed running update pipeline stage",
                    stage=stage.name,
                    error=str(exc),
                )
                raise

        ctx.status = PipelineStatus.COMPLETED
        if ctx.dry_run:
            ctx.dump()
            ctx.print_errors()
