"""Tests for shared model invocation retry utilities."""

from __future__ import annotations

import asyncio

import pytest

from chainmode.config import RetryConfig
from chainmode.models.base import ModelConnectionError
from chainmode.models.retry import (
    backoff_delay,
    call_with_model_retry,
    is_retryable_model_error,
)

NO_DELAY = RetryConfig(
    max_attempts=5,
    base_delay_seconds=0.0,
    max_delay_seconds=0.0,
    jitter_seconds=0.0,
)


class TestModelRetry:
    async def test_retries_failures_until_success(self):
        calls = {"count": 0}

        async def invoke():
            calls["count"] += 1
            if calls["count"] < 3:
                raise RuntimeError("synthetic failure")
            return "ok"

        result = await call_with_model_retry(invoke, retry=NO_DELAY)

        assert result == "ok"
        assert calls["count"] == 3

    async def test_raises_last_error_after_max_attempts(self):
        calls = {"count": 0}

        async def invoke():
            calls["count"] += 1
            raise ValueError(f"failure {calls['count']}")

        with pytest.raises(ValueError, match="failure 5"):
            await call_with_model_retry(invoke, retry=NO_DELAY)

        assert calls["count"] == 5

    async def test_should_retry_can_stop_immediately(self):
        calls = {"count": 0}

        async def invoke():
            calls["count"] += 1
            raise RuntimeError("do not retry")

        with pytest.raises(RuntimeError, match="do not retry"):
            await call_with_model_retry(
                invoke, retry=NO_DELAY, should_retry=lambda _error: False,
            )

        assert calls["count"] == 1

    async def test_on_failure_reports_each_attempt(self):
        seen = []

        async def invoke():
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            await call_with_model_retry(
                invoke,
                retry=RetryConfig(max_attempts=3, base_delay_seconds=0.0, jitter_seconds=0.0),
                on_failure=lambda attempt, error, will_retry: seen.append((attempt, will_retry)),
            )

        assert seen == [(1, True), (2, True), (3, False)]

    async def test_zero_attempts_still_calls_once(self):
        calls = {"count": 0}

        async def invoke():
            calls["count"] += 1
            return "ok"

        assert await call_with_model_retry(invoke, retry=RetryConfig(max_attempts=0)) == "ok"
        assert calls["count"] == 1

    async def test_cancellation_is_not_retried(self):
        calls = {"count": 0}

        async def invoke():
            calls["count"] += 1
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await call_with_model_retry(invoke, retry=NO_DELAY)

        assert calls["count"] == 1


class TestBackoffDelay:
    def test_doubles_per_attempt(self):
        retry = RetryConfig(base_delay_seconds=0.5, max_delay_seconds=8.0, jitter_seconds=0.0)
        assert [backoff_delay(retry, n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]

    def test_capped_at_max_delay(self):
        retry = RetryConfig(base_delay_seconds=1.0, max_delay_seconds=3.0, jitter_seconds=0.0)
        assert backoff_delay(retry, 5) == 3.0

    def test_jitter_stays_in_range(self):
        retry = RetryConfig(base_delay_seconds=1.0, max_delay_seconds=8.0, jitter_seconds=0.25)
        for _ in range(20):
            assert 1.0 <= backoff_delay(retry, 1) <= 1.25


class TestRetryable:
    def test_connection_error(self):
        assert is_retryable_model_error(ModelConnectionError("refused")) is True

    @pytest.mark.parametrize("text", [
        "Connection reset by peer",
        "Request timed out",
        "429 Too Many Requests",
        "Service temporarily unavailable",
    ])
    def test_transient_messages(self, text):
        assert is_retryable_model_error(RuntimeError(text)) is True

    @pytest.mark.parametrize("text", ["", "invalid api key", "bad request"])
    def test_permanent_messages(self, text):
        assert is_retryable_model_error(RuntimeError(text)) is False
