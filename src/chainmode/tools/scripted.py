"""Tools with canned outcomes, for transcript replays."""

from __future__ import annotations

from chainmode.exceptions import ToolExecutionError
from chainmode.tools.registry import Tool, ToolRegistry, ToolResult


class ScriptedTool(Tool):
    """Returns a fixed output, a fixed error, or raises a fatal error."""

    def __init__(
        self,
        name: str,
        *,
        output: str = "",
        error: str | None = None,
        fatal: bool = False,
        description: str = "",
    ):
        self._name = name
        self._output = output
        self._error = error
        self._fatal = fatal
        self._description = description or f"Scripted tool '{name}'"
        self.received: list[dict] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    async def execute(self, args: dict) -> ToolResult:
        self.received.append(dict(args))
        if self._fatal:
            raise ToolExecutionError(self._error or f"Tool '{self._name}' failed fatally")
        if self._error is not None:
            return ToolResult.fail(self._error)
        return ToolResult.ok(self._output)


def registry_from_dict(outcomes: dict) -> ToolRegistry:
    """Build a registry from ``{name: {output|error|fatal|description}}``."""
    registry = ToolRegistry()
    for name, outcome in (outcomes or {}).items():
        outcome = outcome or {}
        if not isinstance(outcome, dict):
            outcome = {"output": str(outcome)}
        registry.register(ScriptedTool(
            str(name),
            output=str(outcome.get("output", "")),
            error=outcome.get("error"),
            fatal=bool(outcome.get("fatal", False)),
            description=str(outcome.get("description", "")),
        ))
    return registry
