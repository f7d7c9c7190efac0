"""
mcplite: a Model Context Protocol client.

JSON-RPC 2.0 over an HTTP+SSE transport: server-to-client messages arrive on
a Server-Sent Events stream, client-to-server messages are HTTP POSTs.

Submodules:
- transport: SSE subscription and POST delivery
- protocol: envelopes, correlation, dispatch, handshake state, client
- capabilities: initialize payloads
- utilities: typed notification payloads and server log forwarding
- events: event names and the emitter used to publish them
"""

__version__ = "0.1.0"

# Transport layer
from mcplite.transport import (
    SSETransport,
    TransportConfig,
    Transport,
    TransportError,
    ConnectionError,
    TimeoutError,
)

# Protocol layer
from mcplite.protocol import (
    ClientConfig,
    MCPClient,
    MCPError,
    ProtocolState,
    Session,
)

# Capabilities
from mcplite.capabilities import (
    ClientCapabilities,
    ClientInfo,
    InitializeResult,
    ServerInfo,
)

# Events and payloads
from mcplite.events import EventEmitter
from mcplite.utilities import LogLevel, LogMessage, ProgressInfo, ResourceUpdate

__all__ = [
    "__version__",
    # Transport
    "SSETransport",
    "TransportConfig",
    "Transport",
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    # Protocol
    "ClientConfig",
    "MCPClient",
    "MCPError",
    "ProtocolState",
    "Session",
    # Capabilities
    "ClientCapabilities",
    "ClientInfo",
    "InitializeResult",
    "ServerInfo",
    # Events
    "EventEmitter",
    "LogLevel",
    "LogMessage",
    "ProgressInfo",
    "ResourceUpdate",
]
