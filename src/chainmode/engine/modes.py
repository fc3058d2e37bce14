"""Execution modes: named loop policies built from steps.

A mode is anything with ``async run(chain, ctx) -> RunResult``.  The four
built-ins compose the step library into fixed pipelines:

- ``while_needs_response``: loop while the chain still needs a response
- ``until_success``: loop until a clean tool round or an assistant reply
- ``step``: one round, with optional continuation
- ``until_tool_used``: loop until a specific tool has been called

Every built-in checks ``max_runs`` before invoking the model, so resuming a
chain that is already at its limit pauses again without another call.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any, ClassVar, Protocol, runtime_checkable

from chainmode.chain import Chain
from chainmode.config import Config
from chainmode.engine.collaborators import ModelInvoker, ToolExecutor
from chainmode.engine.context import ModeContext
from chainmode.engine.pipeline import (
    Continue,
    Failed,
    Paused,
    PipelineValue,
    RunResult,
    StepFn,
    pipe,
    step,
)
from chainmode.engine.steps import (
    check_max_failures,
    check_max_runs,
    check_needs_response,
    check_pause,
    check_stopped_without_tool,
    check_tool_success,
    check_tool_used,
    continue_or_recurse,
    decide_done_on_response,
    emit_progress,
    ensure_mode_state,
    execute_tool_calls,
    invoke_model,
    required_tool_names,
)
from chainmode.events.bus import EventBus
from chainmode.events.types import RUN_COMPLETED, RUN_FAILED, RUN_PAUSED
from chainmode.exceptions import ModeConfigurationError, ModeError

logger = logging.getLogger(__name__)


class ModeName(StrEnum):
    WHILE_NEEDS_RESPONSE = "while_needs_response"
    UNTIL_SUCCESS = "until_success"
    STEP = "step"
    UNTIL_TOOL_USED = "until_tool_used"


@runtime_checkable
class Mode(Protocol):
    async def run(self, chain: Chain, ctx: ModeContext) -> RunResult:
        ...


ModeFn = Callable[[Chain, ModeContext], Awaitable[RunResult]]


class FunctionMode:
    """Adapts a plain ``async (chain, ctx) -> RunResult`` function to ``Mode``."""

    def __init__(self, fn: ModeFn):
        self._fn = fn

    async def run(self, chain: Chain, ctx: ModeContext) -> RunResult:
        return await self._fn(chain, ctx)

    def __repr__(self) -> str:
        return f"FunctionMode({getattr(self._fn, '__name__', self._fn)!r})"


class PipelineMode:
    """A mode that repeats one fixed pipeline of steps until it terminates."""

    name: ClassVar[str] = ""
    steps: ClassVar[tuple[StepFn, ...]] = ()

    def validate(self, ctx: ModeContext) -> None:
        """Reject bad mode-specific options before the first model call."""

    async def round(self, chain: Chain, ctx: ModeContext) -> PipelineValue:
        return await pipe(Continue(chain), ctx, *self.steps)

    async def run(self, chain: Chain, ctx: ModeContext) -> RunResult:
        self.validate(ctx)
        value = await self.round(chain, ctx)
        return await continue_or_recurse(value, self.round, ctx)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class WhileNeedsResponse(PipelineMode):
    name = ModeName.WHILE_NEEDS_RESPONSE
    steps = (
        ensure_mode_state,
        check_max_runs,
        invoke_model,
        execute_tool_calls,
        check_needs_response,
        check_pause,
        check_max_runs,
        emit_progress,
    )


class UntilSuccess(PipelineMode):
    name = ModeName.UNTIL_SUCCESS
    steps = (
        ensure_mode_state,
        check_max_runs,
        invoke_model,
        execute_tool_calls,
        decide_done_on_response,
        check_tool_success,
        check_max_failures,
        check_pause,
        check_max_runs,
        emit_progress,
    )


class UntilToolUsed(PipelineMode):
    name = ModeName.UNTIL_TOOL_USED
    steps = (
        ensure_mode_state,
        check_max_runs,
        invoke_model,
        execute_tool_calls,
        check_tool_used,
        check_stopped_without_tool,
        check_pause,
        check_max_runs,
        emit_progress,
    )

    def validate(self, ctx: ModeContext) -> None:
        super().validate(ctx)
        required_tool_names(ctx)


@step
async def _check_should_continue(chain: Chain, ctx: ModeContext) -> PipelineValue:
    should_continue = ctx.option("continue")
    if should_continue(chain):
        return Continue(chain)
    return Paused(chain)


class StepMode(PipelineMode):
    """Runs a single round and hands control back.

    ``continue`` option:
    - false / absent: one round
    - true: one extra round
    - callable ``(chain) -> bool``: asked after every round; the run keeps
      going while it returns true (``max_runs`` still applies)

    A round that leaves the chain still needing a response ends ``Paused``.
    """

    name = ModeName.STEP
    steps = (
        ensure_mode_state,
        check_max_runs,
        invoke_model,
        execute_tool_calls,
        check_needs_response,
        emit_progress,
    )

    def validate(self, ctx: ModeContext) -> None:
        super().validate(ctx)
        should_continue = ctx.option("continue", False)
        if not isinstance(should_continue, bool) and not callable(should_continue):
            raise ModeConfigurationError(
                f"continue must be a bool or a callable, got {should_continue!r}"
            )

    async def _round_then_ask(self, chain: Chain, ctx: ModeContext) -> PipelineValue:
        return await _check_should_continue(await self.round(chain, ctx), ctx)

    async def run(self, chain: Chain, ctx: ModeContext) -> RunResult:
        self.validate(ctx)
        should_continue = ctx.option("continue", False)

        if callable(should_continue) and not isinstance(should_continue, bool):
            value = await self._round_then_ask(chain, ctx)
            value = await continue_or_recurse(value, self._round_then_ask, ctx)
        else:
            value = await self.round(chain, ctx)
            if should_continue and isinstance(value, Continue):
                value = await self.round(value.chain, ctx)

        if isinstance(value, Continue):
            return Paused(value.chain)
        return value


class ModeRegistry:
    """Built-in modes plus any custom modes registered by the caller."""

    def __init__(self) -> None:
        self._modes: dict[str, Mode] = {
            ModeName.WHILE_NEEDS_RESPONSE: WhileNeedsResponse(),
            ModeName.UNTIL_SUCCESS: UntilSuccess(),
            ModeName.STEP: StepMode(),
            ModeName.UNTIL_TOOL_USED: UntilToolUsed(),
        }

    def register(self, name: str, mode: Mode | ModeFn) -> None:
        """Register a custom mode.  Raises if the name is taken."""
        if not name:
            raise ModeError("Mode name must not be empty")
        if name in self._modes:
            raise ModeError(f"Mode already registered: {name}")
        self._modes[name] = _as_mode(mode)

    def get(self, name: str) -> Mode | None:
        return self._modes.get(str(name))

    def names(self) -> list[str]:
        return list(self._modes.keys())

    def resolve(self, mode: str | Mode | ModeFn) -> Mode:
        """Turn a mode name, ``Mode`` object, or coroutine function into a ``Mode``."""
        if isinstance(mode, str):
            found = self.get(mode)
            if found is None:
                known = ", ".join(self.names())
                raise ModeError(f"Unknown mode: {mode!r} (known: {known})")
            return found
        return _as_mode(mode)


def _as_mode(mode: Mode | ModeFn) -> Mode:
    if isinstance(mode, type):
        raise ModeError(f"Pass a mode instance, not the class {mode.__name__}")
    if isinstance(mode, Mode):
        return mode
    if inspect.iscoroutinefunction(mode):
        return FunctionMode(mode)
    raise ModeError(f"Not a mode: {mode!r}")


def _report(result: RunResult, ctx: ModeContext) -> None:
    chain = result.chain
    if isinstance(result, Failed):
        logger.info(
            "Run %s failed after %d model call(s): %s",
            ctx.run_id, chain.run_count, result.reason,
        )
        ctx.emit(
            RUN_FAILED,
            run=chain.run_count,
            error=str(result.reason),
            error_type=type(result.reason).__name__,
        )
    elif isinstance(result, Paused):
        logger.info("Run %s paused after %d model call(s)", ctx.run_id, chain.run_count)
        ctx.emit(RUN_PAUSED, run=chain.run_count)
    else:
        logger.info("Run %s completed after %d model call(s)", ctx.run_id, chain.run_count)
        ctx.emit(RUN_COMPLETED, run=chain.run_count, extra=getattr(result, "extra", None))


async def execute_mode(mode: Mode, chain: Chain, ctx: ModeContext) -> RunResult:
    """Run ``mode`` and report its outcome on the context's event bus."""
    logger.debug("Run %s starting %r at run_count=%d", ctx.run_id, mode, chain.run_count)
    result = await mode.run(chain, ctx)
    if not getattr(result, "is_terminal", False):
        raise ModeError(f"Mode {mode!r} returned a non-terminal value: {result!r}")
    _report(result, ctx)
    return result


async def run_chain(
    chain: Chain,
    *,
    invoker: ModelInvoker,
    executor: ToolExecutor,
    mode: str | Mode | ModeFn | None = None,
    events: EventBus | None = None,
    config: Config | None = None,
    registry: ModeRegistry | None = None,
    **options: Any,
) -> RunResult:
    """Drive ``chain`` with ``mode`` until it finishes, pauses, or fails.

    ``options`` are the mode options (``max_runs``, ``tool_name``,
    ``continue``, ``should_pause``, ``max_retry_count``).  Since
    ``continue`` is a keyword, it may also be passed as ``continue_``.
    Unset options fall back to ``config.modes``.
    """
    config = config or Config()
    if "continue_" in options:
        options["continue"] = options.pop("continue_")
    ctx = ModeContext.from_config(
        config, invoker=invoker, executor=executor, events=events, **options,
    )
    resolved = (registry or ModeRegistry()).resolve(mode or config.modes.default_mode)
    return await execute_mode(resolved, chain, ctx)
