"""chainmode exception hierarchy.

Provides a structured exception tree so catch blocks can be specific
and callers can distinguish between different failure modes.

``InvocationError`` and ``ToolExecutionError`` never escape a mode run:
the steps convert them into ``Failed`` results.  ``ModeError`` signals a
caller bug and is raised.
"""

from __future__ import annotations


class ChainModeError(Exception):
    """Base for all chainmode exceptions."""


class InvocationError(ChainModeError):
    """Model call failed: network, provider, or malformed response.

    Wraps the underlying provider/transport error and preserves it
    for debugging.
    """

    def __init__(self, message: str, original: BaseException | None = None):
        super().__init__(message)
        self.original = original


class ToolExecutionError(ChainModeError):
    """Fatal tool-layer failure.

    Distinct from a tool returning an error result to the model, which
    is recorded as a message and does not stop the loop.
    """


class ToolFailureLimitError(ToolExecutionError):
    """Too many consecutive tool rounds failed."""

    def __init__(self, failure_count: int, max_retry_count: int):
        super().__init__(
            f"Exceeded max failure count: {failure_count} consecutive failed "
            f"tool rounds (max_retry_count={max_retry_count})"
        )
        self.failure_count = failure_count
        self.max_retry_count = max_retry_count


class ModeError(ChainModeError):
    """Unknown mode or invalid mode registration."""


class ModeConfigurationError(ModeError):
    """Options passed to a mode are missing or invalid."""
