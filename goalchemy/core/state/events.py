# goalchemy/core/state/events.py
"""Event types and the Event value passed to session listeners.

Events are frozen; the payload is wrapped in a MappingProxyType so listeners
can not modify what other listeners see (shallow immutability only).
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class EventType(Enum):
    LOADING_CHANGED = "loading_changed"  # problem load started/finished
    TREE_CHANGED = "tree_changed"  # a new game tree value was installed
    NODE_CHANGED = "node_changed"  # current node moved
    TRANSFORMATION_CHANGED = "transformation_changed"  # rotate/reflect/invert


def _freeze_payload(payload: dict[str, Any] | None) -> Mapping[str, Any] | None:
    if payload is None:
        return None
    return MappingProxyType(dict(payload))


@dataclass(frozen=True)
class Event:
    """Immutable notification.

    Example:
        >>> event = Event.create(EventType.NODE_CHANGED, {"node_id": 3})
        >>> event.payload["node_id"]
        3
    """

    event_type: EventType
    _payload: Mapping[str, Any] | None = field(default=None, repr=False)

    @classmethod
    def create(cls, event_type: EventType, payload: dict[str, Any] | None = None) -> "Event":
        return cls(event_type=event_type, _payload=_freeze_payload(payload))

    @property
    def payload(self) -> Mapping[str, Any]:
        """Read-only payload, empty when none was given."""
        return self._payload if self._payload is not None else MappingProxyType({})
