"""
MCP Protocol Core.

Implements JSON-RPC 2.0 message framing, request/response correlation,
inbound dispatch, and the connection handshake state machine.
"""

from mcplite.protocol.messages import (
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCNotification,
    JSONRPCError,
    MalformedMessage,
    decode_message,
    decode_payload,
    encode_message,
)
from mcplite.protocol.errors import (
    MCPError,
    PARSE_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    INTERNAL_ERROR,
    REQUEST_TIMEOUT,
    REQUEST_CANCELLED,
    NOT_CONNECTED,
)
from mcplite.protocol.state import (
    ProtocolState,
    ProtocolStateMachine,
    InvalidStateTransition,
    Session,
)
from mcplite.protocol.correlation import PendingRequest, PendingRequests
from mcplite.protocol.dispatch import Dispatcher
from mcplite.protocol.builder import RequestBuilder
from mcplite.protocol.client import ClientConfig, MCPClient

__all__ = [
    # Messages
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCNotification",
    "JSONRPCError",
    "MalformedMessage",
    "decode_message",
    "decode_payload",
    "encode_message",
    # Errors
    "MCPError",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "REQUEST_TIMEOUT",
    "REQUEST_CANCELLED",
    "NOT_CONNECTED",
    # State
    "ProtocolState",
    "ProtocolStateMachine",
    "InvalidStateTransition",
    "Session",
    # Engine
    "PendingRequest",
    "PendingRequests",
    "Dispatcher",
    "RequestBuilder",
    # Client
    "ClientConfig",
    "MCPClient",
]
