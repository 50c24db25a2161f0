from goalchemy.core.state.events import Event, EventType
from goalchemy.core.state.notifier import StateNotifier

__all__ = ["Event", "EventType", "StateNotifier"]
