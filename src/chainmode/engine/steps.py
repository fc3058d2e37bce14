"""Step library for composing modes.

Every step takes ``(value, ctx)`` and returns a pipeline value.  Terminal
inputs pass through untouched (the ``step`` decorator guarantees it), so a
pipeline short-circuits as soon as any step returns a terminal value.
Built-in modes are compositions of these functions; custom modes can mix
them with their own steps written against the same contract.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from chainmode.chain import ROLE_ASSISTANT, Chain, ModeState
from chainmode.engine.context import ModeContext
from chainmode.engine.pipeline import (
    Continue,
    Done,
    DoneWithExtra,
    Failed,
    Paused,
    PipelineValue,
    step,
)
from chainmode.events.types import MODEL_INVOCATION, ROUND_COMPLETED, TOOL_ROUND_COMPLETED
from chainmode.exceptions import (
    InvocationError,
    ModeConfigurationError,
    ToolExecutionError,
    ToolFailureLimitError,
)

logger = logging.getLogger(__name__)


@step
async def ensure_mode_state(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Attach a fresh ``ModeState`` if the chain has none yet."""
    if chain.mode_state is None:
        chain = chain.with_mode_state(ModeState())
    return Continue(chain)


@step
async def invoke_model(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Call the model; count the run only when the call succeeds."""
    run_number = chain.run_count + 1
    ctx.emit(MODEL_INVOCATION, phase="start", run=run_number)
    try:
        updated = await ctx.invoker(chain)
    except InvocationError as e:
        logger.debug("Model invocation %d failed: %s", run_number, e)
        ctx.emit(MODEL_INVOCATION, phase="error", run=run_number, error=str(e))
        return Failed(chain, e)

    # The run counter belongs to the steps, whatever the invoker returned.
    state = (chain.mode_state or ModeState()).increment()
    updated = updated.with_mode_state(state)
    ctx.emit(
        MODEL_INVOCATION,
        phase="done",
        run=state.run_count,
        tool_calls=len(updated.pending_tool_calls),
    )
    return Continue(updated)


@step
async def execute_tool_calls(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Run pending tool calls.  Only a fatal executor error fails the run."""
    if not chain.pending_tool_calls:
        if chain.last_tool_round:
            chain = chain.with_tool_round(())
        return Continue(chain)

    try:
        updated = await ctx.executor(chain)
    except ToolExecutionError as e:
        logger.debug("Fatal tool execution error: %s", e)
        return Failed(chain, e)

    outcomes = updated.last_tool_round
    ctx.emit(
        TOOL_ROUND_COMPLETED,
        run=updated.run_count,
        tools=[o.name for o in outcomes],
        failures=sum(1 for o in outcomes if not o.success),
    )
    return Continue(updated)


@step
async def check_max_runs(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Pause once ``max_runs`` model invocations have been spent."""
    max_runs = ctx.max_runs
    if max_runs is not None and chain.run_count >= max_runs:
        logger.debug("Run limit reached (%d/%d), pausing", chain.run_count, max_runs)
        return Paused(chain)
    return Continue(chain)


@step
async def check_needs_response(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Done once the exchange is finished and nothing awaits the model."""
    if not chain.needs_response:
        return Done(chain)
    return Continue(chain)


@step
async def decide_done_on_response(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Done when the latest message is an assistant reply with nothing pending."""
    last = chain.last_message
    if last is not None and last.role == ROLE_ASSISTANT and not last.tool_calls:
        return Done(chain)
    return Continue(chain)


def required_tool_names(ctx: ModeContext) -> list[str]:
    """Normalize the ``tool_name`` option to a non-empty list of names."""
    raw = ctx.option("tool_name")
    if isinstance(raw, str):
        names = [raw]
    elif isinstance(raw, (list, tuple, set, frozenset)):
        names = list(raw)
    else:
        names = []
    if not names or not all(isinstance(n, str) and n for n in names):
        raise ModeConfigurationError(
            f"tool_name must be a tool name or a list of tool names, got {raw!r}"
        )
    return names


@step
async def check_tool_used(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Done with the tool's name once a required tool ran in the latest round."""
    wanted = required_tool_names(ctx)
    for outcome in chain.last_tool_round:
        if outcome.name in wanted:
            return DoneWithExtra(chain, outcome.name)
    return Continue(chain)


@step
async def check_stopped_without_tool(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Pause when the model replied without calling the required tool."""
    if not chain.needs_response:
        logger.debug(
            "Model replied without calling %s, pausing",
            ", ".join(required_tool_names(ctx)),
        )
        return Paused(chain)
    return Continue(chain)


@step
async def check_tool_success(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Done after a clean tool round; count consecutive failing rounds."""
    outcomes = chain.last_tool_round
    if not outcomes:
        return Continue(chain)
    if all(o.success for o in outcomes):
        return Done(chain.with_failure_count(0))
    return Continue(chain.with_failure_count(chain.current_failure_count + 1))


@step
async def check_max_failures(chain: Chain, ctx: ModeContext) -> PipelineValue:
    limit = ctx.max_retry_count
    if chain.current_failure_count > limit:
        return Failed(chain, ToolFailureLimitError(chain.current_failure_count, limit))
    return Continue(chain)


@step
async def check_pause(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Pause when the caller's ``should_pause(chain)`` callback says so."""
    should_pause = ctx.option("should_pause")
    if should_pause is None:
        return Continue(chain)
    if not callable(should_pause):
        raise ModeConfigurationError(
            f"should_pause must be callable, got {should_pause!r}"
        )
    if should_pause(chain):
        return Paused(chain)
    return Continue(chain)


@step
async def emit_progress(chain: Chain, ctx: ModeContext) -> PipelineValue:
    """Publish a round-completed event."""
    ctx.emit(ROUND_COMPLETED, run=chain.run_count, messages=len(chain.messages))
    return Continue(chain)


Recurse = Callable[[Chain, ModeContext], Awaitable[PipelineValue]]


async def continue_or_recurse(
    value: PipelineValue, recurse: Recurse, ctx: ModeContext,
) -> PipelineValue:
    """Re-run ``recurse`` on the chain until a terminal value comes back.

    This is the only loop point of a mode.  It iterates rather than
    recursing, so the stack does not grow with the number of rounds.
    ``value`` is the outcome of the first round; ``ctx.max_rounds`` caps
    the total number of rounds and pauses the run when reached.
    """
    rounds = 1
    while isinstance(value, Continue):
        if ctx.max_rounds is not None and rounds >= ctx.max_rounds:
            logger.warning(
                "Run %s hit the safety ceiling of %d rounds; pausing",
                ctx.run_id, ctx.max_rounds,
            )
            return Paused(value.chain)
        value = await recurse(value.chain, ctx)
        rounds += 1
    return value
