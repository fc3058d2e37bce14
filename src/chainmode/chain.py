"""Chain state: the conversation a mode drives.

A ``Chain`` is immutable.  Every step that changes it returns a new
instance built with ``dataclasses.replace``, so a caller holding an
earlier chain value (for example at a ``Paused`` checkpoint) never sees
it change underneath them.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from chainmode.models.base import ToolCall
from chainmode.tools.registry import ToolResult

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_TOOL = "tool"


@dataclass(frozen=True)
class Message:
    """One conversation message."""

    role: str
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str = ""
    name: str = ""
    is_error: bool = False

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=ROLE_SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=ROLE_USER, content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: Iterable[ToolCall] = ()) -> Message:
        return cls(role=ROLE_ASSISTANT, content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(
        cls, call: ToolCall, content: str, *, is_error: bool = False,
    ) -> Message:
        return cls(
            role=ROLE_TOOL,
            content=content,
            tool_call_id=call.id,
            name=call.name,
            is_error=is_error,
        )

    def to_dict(self) -> dict:
        """Return the OpenAI-format message dict."""
        msg: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            msg["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments),
                    },
                }
                for tc in self.tool_calls
            ]
        if self.role == ROLE_TOOL:
            msg["tool_call_id"] = self.tool_call_id
        return msg


@dataclass(frozen=True)
class ToolOutcome:
    """A tool call paired with the result it produced."""

    call: ToolCall
    result: ToolResult

    @property
    def name(self) -> str:
        return self.call.name

    @property
    def success(self) -> bool:
        return self.result.success


@dataclass(frozen=True)
class ModeState:
    """Loop bookkeeping embedded in the chain."""

    run_count: int = 0

    def increment(self) -> ModeState:
        return replace(self, run_count=self.run_count + 1)


@dataclass(frozen=True)
class Chain:
    """Conversation plus the mode state that travels with it."""

    messages: tuple[Message, ...] = ()
    mode_state: ModeState | None = None
    last_tool_round: tuple[ToolOutcome, ...] = ()
    current_failure_count: int = 0
    custom_context: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def start(cls, prompt: str, *, system: str = "", **custom_context: Any) -> Chain:
        """Create a chain with an optional system prompt and one user message."""
        messages = [Message.system(system)] if system else []
        messages.append(Message.user(prompt))
        return cls(messages=tuple(messages), custom_context=dict(custom_context))

    @property
    def last_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    @property
    def pending_tool_calls(self) -> tuple[ToolCall, ...]:
        last = self.last_message
        if last is None or last.role != ROLE_ASSISTANT:
            return ()
        return last.tool_calls

    @property
    def needs_response(self) -> bool:
        """Whether the model has to be called again to finish the exchange."""
        last = self.last_message
        if last is None:
            return False
        if last.role == ROLE_ASSISTANT:
            return bool(last.tool_calls)
        return last.role in (ROLE_USER, ROLE_TOOL)

    @property
    def run_count(self) -> int:
        return self.mode_state.run_count if self.mode_state else 0

    def add_message(self, message: Message) -> Chain:
        return replace(self, messages=(*self.messages, message))

    def add_messages(self, messages: Iterable[Message]) -> Chain:
        return replace(self, messages=(*self.messages, *messages))

    def with_mode_state(self, mode_state: ModeState) -> Chain:
        return replace(self, mode_state=mode_state)

    def with_tool_round(self, outcomes: Iterable[ToolOutcome]) -> Chain:
        return replace(self, last_tool_round=tuple(outcomes))

    def with_failure_count(self, count: int) -> Chain:
        return replace(self, current_failure_count=count)

    def to_dicts(self) -> list[dict]:
        return [m.to_dict() for m in self.messages]
