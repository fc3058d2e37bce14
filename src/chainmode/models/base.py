"""Model-side types shared by providers and the default invoker.

A provider answers one completion request: the chain's messages in
OpenAI dict form plus optional tool schemas.  Everything about the
conversation loop lives in the engine, not here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ToolCall:
    """One tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ModelResponse:
    """What a provider returns for one completion request."""

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    model: str = ""


class ModelProvider(ABC):
    """A backend that can complete a conversation."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[dict],
        tools: list[dict] | None = None,
    ) -> ModelResponse:
        ...


class ModelConnectionError(Exception):
    """Transport-level failure reaching a provider; always worth a retry."""

    def __init__(self, message: str, original: Exception | None = None):
        super().__init__(message)
        self.original = original
