"""
MCP Transport Layer.

HTTP+SSE transport: an event stream for server-to-client messages and
HTTP POST for client-to-server messages.
"""

from mcplite.transport.types import TransportConfig, TransportEvent, TransportEventType
from mcplite.transport.base import Transport, TransportError, ConnectionError, TimeoutError
from mcplite.transport.sse import SSETransport

__all__ = [
    "Transport",
    "TransportConfig",
    "TransportEvent",
    "TransportEventType",
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    "SSETransport",
]
