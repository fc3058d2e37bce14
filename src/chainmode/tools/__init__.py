"""Tool system: registration and dispatch."""

from __future__ import annotations

from chainmode.tools.registry import Tool as Tool
from chainmode.tools.registry import ToolRegistry as ToolRegistry
from chainmode.tools.registry import ToolResult as ToolResult
