"""Tool registry and dispatch system.

Provides registration, execution with timeout, and schema generation
for model consumption.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from chainmode.exceptions import ToolExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Result of a tool execution."""

    success: bool
    output: str
    error: str | None = None

    @classmethod
    def ok(cls, output: str) -> ToolResult:
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str) -> ToolResult:
        return cls(success=False, output="", error=error)


class Tool(ABC):
    """Abstract base class for all tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @property
    def parameters(self) -> dict:
        """JSON Schema for parameters."""
        return {"type": "object", "properties": {}}

    @property
    def timeout_seconds(self) -> int:
        return 30

    @abstractmethod
    async def execute(self, args: dict) -> ToolResult:
        ...

    def schema(self) -> dict:
        """Return OpenAI-format tool definition."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


class ToolRegistry:
    """Name-indexed set of tools."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool. Raises if name conflicts."""
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    async def execute(self, name: str, arguments: dict) -> ToolResult:
        """Execute a tool by name with timeout.

        Ordinary failures come back as a failed ``ToolResult`` so the model
        can react to them.  ``ToolExecutionError`` is fatal and propagates.
        """
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult.fail(f"Unknown tool: {name}")

        try:
            return await asyncio.wait_for(
                tool.execute(arguments),
                timeout=tool.timeout_seconds,
            )
        except TimeoutError:
            return ToolResult.fail(
                f"Tool '{name}' timed out after {tool.timeout_seconds}s"
            )
        except ToolExecutionError:
            raise
        except Exception as e:
            logger.debug("Tool %s raised %s", name, e)
            return ToolResult.fail(f"Tool error: {type(e).__name__}: {e}")

    def all_schemas(self) -> list[dict]:
        """Return all tool schemas for model consumption."""
        return [tool.schema() for tool in self._tools.values()]

    def list_tools(self) -> list[str]:
        """Return registered tool names."""
        return list(self._tools.keys())
