"""Model-invocation and tool-execution collaborators.

The steps only know the two protocols below.  ``ProviderInvoker`` and
``RegistryExecutor`` adapt a ``ModelProvider`` and a ``ToolRegistry`` to
them; callers with their own transport can pass any coroutine function
with the same shape instead.
"""

from __future__ import annotations

import logging
from typing import Protocol

from chainmode.chain import Chain, Message, ToolOutcome
from chainmode.config import RetryConfig
from chainmode.exceptions import InvocationError
from chainmode.models.base import ModelProvider
from chainmode.models.retry import call_with_model_retry, is_retryable_model_error
from chainmode.recovery.errors import format_tool_failure
from chainmode.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ModelInvoker(Protocol):
    """Calls the model and appends its reply to the chain.

    Raises ``InvocationError`` on failure.  Must not touch ``mode_state``.
    """

    async def __call__(self, chain: Chain) -> Chain:
        ...


class ToolExecutor(Protocol):
    """Runs every pending tool call and appends one tool message per call.

    Sets ``last_tool_round`` on the returned chain.  Raises
    ``ToolExecutionError`` only for unrecoverable conditions.
    """

    async def __call__(self, chain: Chain) -> Chain:
        ...


class ProviderInvoker:
    """``ModelInvoker`` backed by a ``ModelProvider``."""

    def __init__(
        self,
        provider: ModelProvider,
        tools: ToolRegistry | None = None,
        retry: RetryConfig | None = None,
    ):
        self._provider = provider
        self._tools = tools
        self._retry = retry or RetryConfig()

    async def __call__(self, chain: Chain) -> Chain:
        messages = chain.to_dicts()
        schemas = self._tools.all_schemas() if self._tools else None

        def _log_failure(attempt: int, error: BaseException, will_retry: bool) -> None:
            logger.warning(
                "Model %s call failed (attempt %d/%d%s): %s",
                self._provider.name, attempt, self._retry.max_attempts,
                ", retrying" if will_retry else "", error,
            )

        try:
            response = await call_with_model_retry(
                lambda: self._provider.complete(messages, tools=schemas or None),
                retry=self._retry,
                should_retry=is_retryable_model_error,
                on_failure=_log_failure,
            )
        except Exception as e:
            raise InvocationError(
                f"Model '{self._provider.name}' invocation failed: {e}", original=e,
            ) from e

        if response is None:
            raise InvocationError(f"Model '{self._provider.name}' returned no response")

        return chain.add_message(
            Message.assistant(response.text or "", response.tool_calls or ()),
        )


class RegistryExecutor:
    """``ToolExecutor`` backed by a ``ToolRegistry``.

    Calls run sequentially in the order the model listed them.  A failed
    result becomes an error tool message with a recovery hint.
    """

    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    async def __call__(self, chain: Chain) -> Chain:
        outcomes: list[ToolOutcome] = []
        results: list[Message] = []
        for call in chain.pending_tool_calls:
            result = await self._registry.execute(call.name, call.arguments)
            outcomes.append(ToolOutcome(call=call, result=result))
            if result.success:
                results.append(Message.tool(call, result.output))
            else:
                logger.debug("Tool %s failed: %s", call.name, result.error)
                results.append(Message.tool(
                    call, format_tool_failure(call.name, result.error), is_error=True,
                ))
        return chain.add_messages(results).with_tool_round(outcomes)
