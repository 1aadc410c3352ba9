"""Host lifecycle events that trigger a flush of every live scratch buffer."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List


class TriggerEvent(str, Enum):
    SHUTDOWN = "shutdown"
    VISIBLE_BUFFER_CHANGED = "visible-buffer-changed"
    SESSION_ATTACH = "session-attach"
    FOCUS_CHANGED = "focus-changed"


EventCallback = Callable[[object], None]


def _key(event: str) -> str:
    return event.value if isinstance(event, Enum) else str(event)


class EventBus:
    """Minimal event bus the host emits lifecycle signals on."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[EventCallback]] = {}

    def subscribe(self, event: str, callback: EventCallback) -> None:
        self._subscribers.setdefault(_key(event), []).append(callback)

    def unsubscribe(self, event: str, callback: EventCallback) -> bool:
        callbacks = self._subscribers.get(_key(event), [])
        if callback not in callbacks:
            return False
        callbacks.remove(callback)
        return True

    def emit(self, event: str, payload: object | None = None) -> None:
        for callback in list(self._subscribers.get(_key(event), [])):
            callback(payload)

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(_key(event), []))


__all__ = ["EventBus", "EventCallback", "TriggerEvent"]
