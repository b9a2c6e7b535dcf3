"""Stage model and the sequential task executor.

A pipeline is an ordered tuple of Stage. ``run_pipeline`` walks it on the
calling thread:

1. ``enabled()`` false  -> the stage is left out entirely (not reported).
2. ``skip()`` returns a reason -> reported as skipped, action not run.
3. otherwise the action runs; the first Err aborts every later stage.

Both predicates are evaluated only when the executor reaches the stage,
because they may depend on what earlier stages did (e.g. whether the
publish succeeded).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from shipit.core.result import Err, Ok, Result
from shipit.output.console import ConsoleProtocol, Style
from shipit.release.errors import ReleaseError

__all__ = [
    "PipelineReport",
    "PublishState",
    "RunContext",
    "Stage",
    "StageAction",
    "StageFailure",
    "StageOutcome",
    "run_pipeline",
]


@dataclass
class RunContext:
    """Mutable state shared by the stages of one run."""

    project_root: Path
    console: ConsoleProtocol
    otp: str | None = None

    def emit(self, line: str) -> None:
        """Report one line of external process output."""
        self.console.print(f"  {line}", Style.DIM)


StageAction = Callable[[RunContext], Result[None, ReleaseError]]


def _always() -> bool:
    return True


def _never() -> str | None:
    return None


@dataclass(frozen=True, slots=True)
class Stage:
    title: str
    action: StageAction
    enabled: Callable[[], bool] = _always
    skip: Callable[[], str | None] = _never


class PublishState:
    """Whether the publish stage reached its success path.

    Starts false and is set once; it is never reset during a run.
    """

    def __init__(self) -> None:
        self._published = False

    @property
    def published(self) -> bool:
        return self._published

    def mark_published(self) -> None:
        self._published = True


@dataclass(frozen=True, slots=True)
class StageOutcome:
    title: str
    status: Literal["done", "skipped"]
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class StageFailure:
    """The stage that aborted the pipeline and its error."""

    title: str
    error: ReleaseError


@dataclass(frozen=True, slots=True)
class PipelineReport:
    outcomes: tuple[StageOutcome, ...] = field(default_factory=tuple)

    @property
    def done(self) -> list[str]:
        return [o.title for o in self.outcomes if o.status == "done"]

    @property
    def skipped(self) -> dict[str, str | None]:
        return {o.title: o.reason for o in self.outcomes if o.status == "skipped"}


def run_pipeline(
    stages: tuple[Stage, ...],
    ctx: RunContext,
) -> Result[PipelineReport, StageFailure]:
    """Run stages strictly in order, stopping at the first failure."""
    outcomes: list[StageOutcome] = []
    for stage in stages:
        if not stage.enabled():
            continue

        reason = stage.skip()
        if reason is not None:
            ctx.console.skipped(stage.title, reason)
            outcomes.append(StageOutcome(stage.title, "skipped", reason))
            continue

        ctx.console.header(stage.title)
        result = stage.action(ctx)
        if isinstance(result, Err):
            ctx.console.error(f"{stage.title} failed")
            return Err(StageFailure(title=stage.title, error=result.error))
        outcomes.append(StageOutcome(stage.title, "done"))

    return Ok(PipelineReport(outcomes=tuple(outcomes)))
