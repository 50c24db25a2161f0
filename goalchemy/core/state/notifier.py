# goalchemy/core/state/notifier.py
"""Publish/subscribe of session state changes.

The presentation layer subscribes to EventTypes instead of polling the session.

- Listener failures are logged and do not stop delivery to other listeners.
- notify() delivers to a snapshot of the listeners taken when it starts.
- An RLock guards the listener table, since auto-play fires from a timer thread.
"""

import logging
import threading
from collections.abc import Callable

from goalchemy.core.state.events import Event, EventType

_log = logging.getLogger(__name__)

Listener = Callable[[Event], None]


class StateNotifier:
    """State change notification for one puzzle session.

    Example:
        >>> notifier = StateNotifier()
        >>> notifier.subscribe(EventType.NODE_CHANGED, lambda e: print(e.payload["node_id"]))
        >>> notifier.notify(Event.create(EventType.NODE_CHANGED, {"node_id": 1}))
        1
    """

    def __init__(self) -> None:
        self._subscribers: dict[EventType, list[Listener]] = {}
        self._lock = threading.RLock()

    def subscribe(self, event_type: EventType, callback: Listener) -> None:
        """Subscribes a callback; subscribing the same callback twice has no effect."""
        with self._lock:
            listeners = self._subscribers.setdefault(event_type, [])
            if callback not in listeners:
                listeners.append(callback)

    def unsubscribe(self, event_type: EventType, callback: Listener) -> None:
        with self._lock:
            listeners = self._subscribers.get(event_type, [])
            if callback in listeners:
                listeners.remove(callback)

    def subscriber_count(self, event_type: EventType) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))

    def notify(self, event: Event) -> None:
        with self._lock:
            callbacks = self._subscribers.get(event.event_type, [])[:]

        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                cb_name = getattr(callback, "__name__", repr(callback))
                _log.exception("Listener %s failed on %s", cb_name, event.event_type.value)

    def emit(self, event_type: EventType, **payload: object) -> None:
        """Shorthand for notify(Event.create(event_type, payload))."""
        self.notify(Event.create(event_type, dict(payload)))
