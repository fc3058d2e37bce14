"""Retrying a single model call with exponential backoff.

Settings come straight from ``RetryConfig``; ``load_config`` has already
clamped them to sane ranges.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from chainmode.config import RetryConfig
from chainmode.models.base import ModelConnectionError

T = TypeVar("T")

# Lowercased fragments of provider error text that indicate a transient fault.
TRANSIENT_MARKERS = frozenset({
    "connect",
    "timeout",
    "timed out",
    "rate limit",
    "too many requests",
    "temporar",
    "unavailable",
})

FailureHook = Callable[[int, BaseException, bool], None]


def is_retryable_model_error(error: BaseException) -> bool:
    """True for connection errors and messages that read as transient."""
    if isinstance(error, ModelConnectionError):
        return True
    text = str(error).lower()
    return any(marker in text for marker in TRANSIENT_MARKERS)


def backoff_delay(retry: RetryConfig, attempt: int) -> float:
    """Seconds to wait after failed ``attempt`` (1-based) before the next one."""
    delay = min(retry.max_delay_seconds, retry.base_delay_seconds * 2 ** (attempt - 1))
    if retry.jitter_seconds > 0:
        delay += random.uniform(0.0, retry.jitter_seconds)
    return delay


async def call_with_model_retry(
    invoke: Callable[[], Awaitable[T]],
    *,
    retry: RetryConfig,
    should_retry: Callable[[BaseException], bool] | None = None,
    on_failure: FailureHook | None = None,
) -> T:
    """Await ``invoke()`` up to ``retry.max_attempts`` times.

    ``should_retry`` decides whether an error is worth another attempt
    (default: any ``Exception``).  ``on_failure(attempt, error, will_retry)``
    is called after each failed attempt.  The last error is re-raised.
    Cancellation is never retried since it is not an ``Exception``.
    """
    attempts = max(1, retry.max_attempts)
    attempt = 0
    while True:
        attempt += 1
        try:
            return await invoke()
        except Exception as error:
            will_retry = attempt < attempts and (should_retry is None or should_retry(error))
            if on_failure is not None:
                on_failure(attempt, error, will_retry)
            if not will_retry:
                raise
        delay = backoff_delay(retry, attempt)
        if delay > 0:
            await asyncio.sleep(delay)
