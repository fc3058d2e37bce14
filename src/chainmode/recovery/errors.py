"""Categorization of non-fatal tool failures.

Failed tool results are written back into the chain so the model can
react to them.  Classifying the error lets that message carry a concrete
recovery hint instead of a bare error string.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class ErrorCategory(Enum):
    """Categories of tool failures with different recovery strategies."""

    UNKNOWN_TOOL = "unknown_tool"
    INVALID_ARGUMENTS = "invalid_arguments"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    RUNTIME = "runtime"
    UNKNOWN = "unknown"


@dataclass
class CategorizedError:
    """An error with its category, matched detail, and recovery hint."""

    category: ErrorCategory
    original_error: str
    detail: str
    recovery_hint: str


# First match wins
_PATTERNS: list[tuple[re.Pattern, ErrorCategory, str]] = [
    (
        re.compile(r"Unknown tool", re.IGNORECASE),
        ErrorCategory.UNKNOWN_TOOL,
        "That tool does not exist. Use one of the tools you were given.",
    ),
    (
        re.compile(
            r"TypeError|missing \d+ required|unexpected keyword|invalid argument|"
            r"JSONDecodeError|Invalid JSON",
            re.IGNORECASE,
        ),
        ErrorCategory.INVALID_ARGUMENTS,
        "The arguments did not match the tool's parameters. Check the schema.",
    ),
    (
        re.compile(r"not found|No such file|FileNotFoundError|KeyError", re.IGNORECASE),
        ErrorCategory.NOT_FOUND,
        "The requested item does not exist. Verify the name or path.",
    ),
    (
        re.compile(r"PermissionError|Permission denied|forbidden|not allowed", re.IGNORECASE),
        ErrorCategory.PERMISSION,
        "The operation is not permitted. Try a different approach.",
    ),
    (
        re.compile(r"timed out|TimeoutError|timeout", re.IGNORECASE),
        ErrorCategory.TIMEOUT,
        "The tool timed out. Try a smaller request.",
    ),
    (
        re.compile(r"Error|Exception|Traceback|Failed", re.IGNORECASE),
        ErrorCategory.RUNTIME,
        "The tool raised an error. Review the message and adjust the call.",
    ),
]


def categorize_error(error_text: str) -> CategorizedError:
    """Categorize an error string into a structured CategorizedError."""
    if not error_text:
        return CategorizedError(
            category=ErrorCategory.UNKNOWN,
            original_error="",
            detail="No error information provided",
            recovery_hint="Review what happened and try again.",
        )

    for pattern, category, hint in _PATTERNS:
        match = pattern.search(error_text)
        if match:
            return CategorizedError(
                category=category,
                original_error=error_text,
                detail=match.group(0),
                recovery_hint=hint,
            )

    return CategorizedError(
        category=ErrorCategory.UNKNOWN,
        original_error=error_text,
        detail=error_text[:200],
        recovery_hint="Review the error and try a different approach.",
    )


def categorize_tool_failure(tool_name: str, tool_error: str | None) -> CategorizedError:
    """Categorize a failed tool result with tool-specific context."""
    result = categorize_error(tool_error or "")
    if result.category == ErrorCategory.INVALID_ARGUMENTS:
        result.recovery_hint = (
            f"The arguments passed to '{tool_name}' were rejected. "
            "Check the tool's parameter schema and try again."
        )
    return result


def format_tool_failure(tool_name: str, tool_error: str | None) -> str:
    """Render the message content recorded for a failed tool call."""
    categorized = categorize_tool_failure(tool_name, tool_error)
    error = tool_error or "no error message"
    return f"ERROR ({categorized.category.value}): {error}\nHint: {categorized.recovery_hint}"
