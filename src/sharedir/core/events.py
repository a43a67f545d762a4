"""Event bus for diagnostics.

Filesystem operations and the HTTP layer publish envelopes here, and the
logger publishes every record as ``log.record``; the JSONL diagnostics sink
subscribes to all of them. Subscriber failures are logged and never reach
the publisher.
"""

from __future__ import annotations

import contextlib
import sys
import traceback
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from sharedir.core.logging import LOG_RECORD_EVENT, get_logger

_logger = get_logger(__name__)


class EventBus:
    """Simple event bus.

    Example:
        bus = EventBus()

        def on_end(data):
            print(data["operation"], data["data"]["status"])

        bus.subscribe("operation.end", on_end)
        bus.publish("operation.end", envelope)
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callable[[dict[str, Any]], None]]] = defaultdict(list)
        self._all_subscribers: list[Callable[[str, dict[str, Any]], None]] = []

    def subscribe(self, event: str, callback: Callable[[dict[str, Any]], None]) -> None:
        self._subscribers[event].append(callback)

    def unsubscribe(self, event: str, callback: Callable[[dict[str, Any]], None]) -> None:
        if event in self._subscribers:
            self._subscribers[event].remove(callback)

    def subscribe_all(self, callback: Callable[[str, dict[str, Any]], None]) -> None:
        """Subscribe to all published events.

        Args:
            callback: Callback function (receives event name and event data dict)
        """
        self._all_subscribers.append(callback)

    def unsubscribe_all(self, callback: Callable[[str, dict[str, Any]], None]) -> None:
        if callback in self._all_subscribers:
            self._all_subscribers.remove(callback)

    def publish(self, event: str, data: dict[str, Any] | None = None) -> None:
        data = data or {}

        for cb_event in list(self._subscribers.get(event, [])):
            try:
                cb_event(data)
            except Exception as e:
                self._report(event, "event handler", e)

        for cb_all in list(self._all_subscribers):
            try:
                cb_all(event, data)
            except Exception as e:
                self._report(event, "all-event handler", e)

    def _report(self, event: str, kind: str, exc: Exception) -> None:
        msg = f"Error in {kind} for '{event}': {type(exc).__name__}: {exc}"
        if event == LOG_RECORD_EVENT:
            # Logging here would publish another log.record to the same handler.
            with contextlib.suppress(Exception):
                sys.stderr.write(msg + "\n" + traceback.format_exc())
            return
        _logger.error(msg, traceback=traceback.format_exc())

    def clear(self) -> None:
        self._subscribers.clear()
        self._all_subscribers.clear()


_global_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get global event bus instance."""
    global _global_bus
    if _global_bus is None:
        _global_bus = EventBus()
    return _global_bus
