"""Shared test fixtures for chainmode."""

from __future__ import annotations

import itertools

import pytest

from chainmode.chain import Chain, Message, ToolOutcome
from chainmode.config import Config, ModesConfig
from chainmode.engine.context import ModeContext
from chainmode.events.bus import EventBus
from chainmode.exceptions import InvocationError, ToolExecutionError
from chainmode.models.base import ToolCall
from chainmode.tools.registry import ToolResult

_call_ids = itertools.count(1)


def tool_call(name: str, **arguments) -> ToolCall:
    return ToolCall(id=f"call_{next(_call_ids)}", name=name, arguments=arguments)


def calls(*names: str) -> Message:
    """An assistant message requesting the named tools."""
    return Message.assistant("", [tool_call(n) for n in names])


def reply(text: str = "All done.") -> Message:
    """A plain assistant reply."""
    return Message.assistant(text)


class FakeInvoker:
    """Appends scripted assistant messages; exceptions in the script are raised.

    Raises ``AssertionError`` when called more often than scripted so a
    runaway loop fails loudly.
    """

    def __init__(self, script: list[Message | Exception]):
        self._script = list(script)
        self.calls = 0
        self.seen: list[Chain] = []

    async def __call__(self, chain: Chain) -> Chain:
        self.seen.append(chain)
        if not self._script:
            raise AssertionError("FakeInvoker called more times than scripted")
        self.calls += 1
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        return chain.add_message(item)


class FakeExecutor:
    """Answers pending tool calls from a name -> outcome table.

    An outcome is a ``ToolResult`` or an exception to raise.  Unlisted
    tools succeed with output ``"ok"``.
    """

    def __init__(self, outcomes: dict[str, ToolResult | Exception] | None = None):
        self._outcomes = outcomes or {}
        self.executed: list[str] = []

    async def __call__(self, chain: Chain) -> Chain:
        round_: list[ToolOutcome] = []
        messages: list[Message] = []
        for call in chain.pending_tool_calls:
            self.executed.append(call.name)
            outcome = self._outcomes.get(call.name, ToolResult.ok("ok"))
            if isinstance(outcome, Exception):
                raise outcome
            round_.append(ToolOutcome(call=call, result=outcome))
            messages.append(Message.tool(
                call, outcome.output or outcome.error or "", is_error=not outcome.success,
            ))
        return chain.add_messages(messages).with_tool_round(round_)


def make_ctx(
    invoker=None,
    executor=None,
    *,
    events: EventBus | None = None,
    max_rounds: int | None = 100,
    **options,
) -> ModeContext:
    return ModeContext(
        invoker=invoker or FakeInvoker([]),
        executor=executor or FakeExecutor(),
        options=options,
        events=events,
        max_rounds=max_rounds,
    )


@pytest.fixture
def chain() -> Chain:
    return Chain.start("What's the weather in Paris?", system="You are helpful.")


@pytest.fixture
def config() -> Config:
    """A test configuration with a low safety ceiling."""
    return Config(modes=ModesConfig(max_rounds=20, max_retry_count=2))


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def invocation_error() -> InvocationError:
    return InvocationError("provider unavailable")


@pytest.fixture
def fatal_tool_error() -> ToolExecutionError:
    return ToolExecutionError("sandbox crashed")
