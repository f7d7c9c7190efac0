"""
MCP Capabilities.

What the client declares during initialize and what it records from the
server's answer.
"""

from mcplite.capabilities.client import (
    ClientCapabilities,
    RootsCapability,
    SamplingCapability,
)
from mcplite.capabilities.negotiation import (
    PROTOCOL_VERSION,
    ClientInfo,
    InitializeResult,
    ServerInfo,
)

__all__ = [
    "ClientCapabilities",
    "RootsCapability",
    "SamplingCapability",
    "PROTOCOL_VERSION",
    "ClientInfo",
    "InitializeResult",
    "ServerInfo",
]
