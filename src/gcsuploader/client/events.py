"""Event dispatch with buffering for late listeners.

Events raised before a listener is registered are kept per kind and
delivered, in order, the moment a listener is attached. Listeners
registered later only see subsequently raised events.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from typing import Any

from gcsuploader.core.types import EventKind

logger = logging.getLogger(__name__)

Listener = Callable[..., None]

# Signal events keep a single pending entry; payload events keep them all.
PENDING_LIMITS: dict[EventKind, int | None] = {
    EventKind.PROGRESS: None,
    EventKind.ERROR: None,
    EventKind.DONE: 1,
    EventKind.CANCEL: 1,
    EventKind.PAUSE: 1,
}

_NO_PAYLOAD = object()


class EventDispatcher:
    """Observer registry with one listener per event kind.

    Usage:
        events = EventDispatcher()
        events.emit(EventKind.PROGRESS, 1024)  # buffered
        events.on(EventKind.PROGRESS, print)   # prints 1024
        events.emit(EventKind.DONE)            # delivered immediately if set
    """

    def __init__(self) -> None:
        self._listeners: dict[EventKind, Listener] = {}
        self._pending: dict[EventKind, deque[Any]] = {
            kind: deque(maxlen=limit) for kind, limit in PENDING_LIMITS.items()
        }

    def on(self, kind: EventKind | str, listener: Listener) -> None:
        """Register the listener for an event kind and flush pending events.

        The last registration for a kind wins.
        """
        kind = EventKind(kind)
        self._listeners[kind] = listener
        pending = self._pending[kind]
        while pending:
            self._deliver(listener, pending.popleft())

    def off(self, kind: EventKind | str) -> None:
        """Remove the listener for an event kind."""
        self._listeners.pop(EventKind(kind), None)

    def has_listener(self, kind: EventKind | str) -> bool:
        return EventKind(kind) in self._listeners

    def pending(self, kind: EventKind | str) -> list[Any]:
        """Return payloads waiting for a listener (oldest first)."""
        return [
            None if p is _NO_PAYLOAD else p for p in self._pending[EventKind(kind)]
        ]

    def emit(self, kind: EventKind, payload: Any = _NO_PAYLOAD) -> None:
        """Deliver an event now, or buffer it until a listener exists."""
        listener = self._listeners.get(kind)
        if listener is None:
            self._pending[kind].append(payload)
            return
        self._deliver(listener, payload)

    def _deliver(self, listener: Listener, payload: Any) -> None:
        # A failing listener must not break the caller (the transfer loop).
        try:
            if payload is _NO_PAYLOAD:
                listener()
            else:
                listener(payload)
        except Exception:
            logger.exception(f"Listener {listener!r} failed")
