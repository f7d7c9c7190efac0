"""Named-event publish/subscribe used to surface protocol events."""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Client lifecycle
CONNECT = "connect"
DISCONNECT = "disconnect"
ERROR = "error"

# Server notifications
RESOURCE_LIST_CHANGED = "resource_list_changed"
RESOURCE_UPDATED = "resource_updated"
TOOL_LIST_CHANGED = "tool_list_changed"
PROMPT_LIST_CHANGED = "prompt_list_changed"
PROGRESS = "progress"
MESSAGE = "message"

# Server-initiated requests
SAMPLING_REQUEST = "sampling_request"
ROOTS_LIST_REQUEST = "roots_list_request"

EventHandler = Callable[[Any], None]


class EventEmitter:
    """
    Multi-subscriber registry keyed by event name.

    Handlers run synchronously, in registration order. Emitting an event
    nobody listens to does nothing.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def on(self, event: str, handler: EventHandler) -> None:
        """
        Register a handler for an event.

        Args:
            event: Event name.
            handler: Callable receiving the event payload.
        """
        self._handlers.setdefault(event, []).append(handler)

    def once(self, event: str, handler: EventHandler) -> None:
        """Register a handler that is removed after its first call."""

        def wrapper(payload: Any) -> None:
            self.off(event, wrapper)
            handler(payload)

        self.on(event, wrapper)

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove a previously registered handler, if present."""
        handlers = self._handlers.get(event)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event]

    def emit(self, event: str, payload: Any = None) -> None:
        """
        Invoke every handler registered for an event.

        A handler that raises is logged and does not stop the others.

        Args:
            event: Event name.
            payload: Value passed to each handler.
        """
        # Copy so handlers may unsubscribe while we iterate
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception(f"Handler for {event!r} event failed")

    def listener_count(self, event: str) -> int:
        """Number of handlers registered for an event."""
        return len(self._handlers.get(event, ()))
