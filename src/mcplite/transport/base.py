"""Abstract base transport and error types."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from mcplite.transport.types import TransportConfig, TransportEvent, TransportEventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[TransportEvent], Awaitable[None]]


class TransportError(Exception):
    """Base exception for transport errors."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code


class ConnectionError(TransportError):
    """Failed to establish, or lost, the connection to the server."""

    pass


class TimeoutError(TransportError):
    """Request or connection timed out."""

    pass


class Transport(ABC):
    """
    Abstract base class for MCP transports.

    A transport has two halves: an inbound event subscription, opened by
    connect(), that pushes TransportEvents to registered handlers; and an
    outbound send() that delivers one serialized message to a URL.

    Handlers are awaited one at a time, in arrival order, so each inbound
    event is fully handled before the next is delivered.
    """

    def __init__(self, config: TransportConfig):
        self.config = config
        self._event_handlers: list[EventHandler] = []

    def on_event(self, handler: EventHandler) -> None:
        """
        Register an event handler for inbound transport events.

        Args:
            handler: Coroutine function invoked with each event.
        """
        self._event_handlers.append(handler)

    async def _emit_event(
        self,
        type: TransportEventType,
        data: str | None = None,
        error: Exception | None = None,
    ) -> None:
        """Deliver an event to every registered handler."""
        event = TransportEvent(type=type, timestamp=time.time(), data=data, error=error)
        for handler in list(self._event_handlers):
            try:
                await handler(event)
            except Exception:
                # Don't let handler errors stop the stream
                logger.exception(f"Transport event handler failed for {event.type.name}")

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the inbound event subscription.

        Returns once the stream is established; events are then delivered
        in the background.

        Raises:
            ConnectionError: If the subscription cannot be opened.
            TimeoutError: If opening it times out.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Close the subscription and release all resources.

        This method should be safe to call multiple times.
        """
        pass

    @abstractmethod
    async def send(self, url: str, body: bytes) -> None:
        """
        Deliver one serialized JSON-RPC message.

        Args:
            url: Message endpoint to POST to.
            body: JSON body.

        Raises:
            TransportError: If delivery fails or the server rejects it.
        """
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """
        Check if the inbound subscription is open.

        Returns:
            True if connected and ready for communication.
        """
        pass
