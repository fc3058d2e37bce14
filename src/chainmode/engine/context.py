"""Per-invocation context handed to every step.

Bundles the collaborators, the caller's read-only options, and the
telemetry side-channel.  Nothing here is process-global: two runs with
different contexts never observe each other.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from chainmode.config import Config
from chainmode.engine.collaborators import ModelInvoker, ToolExecutor
from chainmode.events.bus import Event, EventBus
from chainmode.exceptions import ModeConfigurationError

DEFAULT_MAX_ROUNDS = 100
DEFAULT_MAX_RETRY_COUNT = 3


@dataclass(frozen=True)
class ModeContext:
    """Collaborators, options and telemetry for one mode invocation.

    ``max_rounds`` is a safety ceiling on loop rounds independent of the
    caller's ``max_runs`` option; ``None`` disables it.
    """

    invoker: ModelInvoker
    executor: ToolExecutor
    options: Mapping[str, Any] = field(default_factory=dict)
    events: EventBus | None = None
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    max_rounds: int | None = DEFAULT_MAX_ROUNDS
    default_max_retry_count: int = DEFAULT_MAX_RETRY_COUNT

    def __post_init__(self) -> None:
        # Freeze a private copy so later caller mutations cannot leak in.
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))
        if self.max_rounds is not None and self.max_rounds <= 0:
            object.__setattr__(self, "max_rounds", None)
        for key in ("max_runs", "max_retry_count"):
            _check_count(key, self.options.get(key))

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        invoker: ModelInvoker,
        executor: ToolExecutor,
        events: EventBus | None = None,
        **options: Any,
    ) -> ModeContext:
        """Build a context whose unset options fall back to ``config.modes``."""
        modes = config.modes
        if "max_runs" not in options and modes.resolved_max_runs is not None:
            options["max_runs"] = modes.resolved_max_runs
        return cls(
            invoker=invoker,
            executor=executor,
            options=options,
            events=events,
            max_rounds=modes.resolved_max_rounds,
            default_max_retry_count=modes.max_retry_count,
        )

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    @property
    def max_runs(self) -> int | None:
        return self.options.get("max_runs")

    @property
    def max_retry_count(self) -> int:
        return self.options.get("max_retry_count", self.default_max_retry_count)

    def emit(self, event_type: str, **data: Any) -> None:
        """Publish an event on the injected bus, if any."""
        if self.events is None:
            return
        self.events.emit(Event(event_type=event_type, run_id=self.run_id, data=data))


def _check_count(key: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ModeConfigurationError(
            f"{key} must be a non-negative integer, got {value!r}"
        )
