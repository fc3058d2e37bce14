"""chainmode: execution modes for tool-calling LLM chains.

A mode drives a chain through repeated rounds of model invocation and
tool execution until the run finishes, pauses at a resumable
checkpoint, or fails.
"""

from __future__ import annotations

__version__ = "0.1.0"

from chainmode.chain import Chain, Message, ModeState, ToolOutcome
from chainmode.engine.collaborators import ProviderInvoker, RegistryExecutor
from chainmode.engine.context import ModeContext
from chainmode.engine.modes import Mode, ModeName, ModeRegistry, execute_mode, run_chain
from chainmode.engine.pipeline import (
    Continue,
    Done,
    DoneWithExtra,
    Failed,
    Paused,
    PipelineValue,
    RunResult,
    RunStatus,
)

__all__ = [
    "Chain",
    "Continue",
    "Done",
    "DoneWithExtra",
    "Failed",
    "Message",
    "Mode",
    "ModeContext",
    "ModeName",
    "ModeRegistry",
    "ModeState",
    "Paused",
    "PipelineValue",
    "ProviderInvoker",
    "RegistryExecutor",
    "RunResult",
    "RunStatus",
    "ToolOutcome",
    "execute_mode",
    "run_chain",
]
