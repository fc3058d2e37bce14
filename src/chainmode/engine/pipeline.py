"""Pipeline values: the continue/terminal contract between steps.

A step receives a value and returns a value.  ``Continue`` means "keep
going, pipe into the next step"; every other variant is terminal and
must flow through the rest of the pipeline unchanged.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeAlias

from chainmode.chain import Chain

if TYPE_CHECKING:
    from chainmode.engine.context import ModeContext


class RunStatus(StrEnum):
    RUNNING = "running"
    DONE = "done"
    PAUSED = "paused"
    FAILED = "failed"


@dataclass(frozen=True)
class Continue:
    """Non-terminal: hand the chain to the next step."""

    chain: Chain
    status = RunStatus.RUNNING
    is_terminal = False


@dataclass(frozen=True)
class Done:
    """Successful completion."""

    chain: Chain
    status = RunStatus.DONE
    is_terminal = True


@dataclass(frozen=True)
class DoneWithExtra:
    """Successful completion with auxiliary data (e.g. the tool that stopped the loop)."""

    chain: Chain
    extra: Any
    status = RunStatus.DONE
    is_terminal = True


@dataclass(frozen=True)
class Paused:
    """Clean checkpoint; re-run the same mode with this chain to resume."""

    chain: Chain
    status = RunStatus.PAUSED
    is_terminal = True


@dataclass(frozen=True)
class Failed:
    """Terminal failure.  ``chain`` is the state at the point of failure."""

    chain: Chain
    reason: BaseException
    status = RunStatus.FAILED
    is_terminal = True


RunResult: TypeAlias = Done | DoneWithExtra | Paused | Failed
PipelineValue: TypeAlias = Continue | RunResult

StepFn: TypeAlias = Callable[[PipelineValue, "ModeContext"], Awaitable[PipelineValue]]
ChainStepFn: TypeAlias = Callable[[Chain, "ModeContext"], Awaitable[PipelineValue]]


def step(fn: ChainStepFn) -> StepFn:
    """Lift a ``(chain, ctx)`` coroutine into a pipeline step.

    Terminal inputs are returned as-is without calling ``fn``.
    """

    @functools.wraps(fn)
    async def wrapper(value: PipelineValue, ctx: ModeContext) -> PipelineValue:
        if not isinstance(value, Continue):
            return value
        return await fn(value.chain, ctx)

    return wrapper


async def pipe(value: PipelineValue, ctx: ModeContext, *steps: StepFn) -> PipelineValue:
    """Thread ``value`` through ``steps`` in order."""
    for s in steps:
        value = await s(value, ctx)
    return value
