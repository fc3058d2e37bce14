"""Run telemetry.

Steps publish events through the bus carried in the mode context.  The
bus keeps a bounded history and forwards each event to its listeners;
the engine itself never reads events back.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """One thing that happened during a run."""

    event_type: str
    run_id: str
    data: dict = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


Listener = Callable[[Event], None]


class EventBus:
    """Bounded event history plus synchronous listeners."""

    def __init__(self, max_history: int = 1000) -> None:
        self._history: deque[Event] = deque(maxlen=max_history)
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Forward every future event to ``listener``; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: Event) -> None:
        """Record ``event`` and hand it to each listener in subscription order.

        A listener that raises is logged and skipped so telemetry can
        never break a run.
        """
        self._history.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    "Event listener %s failed for %s: %s",
                    getattr(listener, "__name__", listener), event.event_type, e,
                )

    def recent_events(self, limit: int = 50) -> list[Event]:
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def events_for(self, run_id: str) -> list[Event]:
        """Return the retained events of one run, oldest first."""
        return [e for e in self._history if e.run_id == run_id]
