"""Initialize handshake payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mcplite import __version__

PROTOCOL_VERSION = "2025-03-26"


@dataclass
class ClientInfo:
    """Information about this client sent during initialization."""

    name: str = "mcplite"
    version: str = __version__

    def to_dict(self) -> dict[str, str]:
        """Convert to wire format."""
        return {"name": self.name, "version": self.version}


@dataclass
class ServerInfo:
    """Information about the connected server."""

    name: str
    version: str

    @classmethod
    def from_dict(cls, data: dict) -> "ServerInfo":
        """Create from server response."""
        return cls(
            name=data.get("name", "unknown"),
            version=data.get("version", "unknown"),
        )

    def __str__(self) -> str:
        return f"{self.name} v{self.version}"


@dataclass
class InitializeResult:
    """
    Result of the initialize exchange.

    Server capabilities and the protocol version are kept as the server sent
    them; the client does not interpret either.
    """

    protocol_version: str
    """Protocol version the server answered with."""

    server_info: ServerInfo
    """Information about the server."""

    capabilities: dict[str, Any]
    """Capabilities declared by the server."""

    instructions: str | None = None
    """Optional usage instructions supplied by the server."""

    raw: dict[str, Any] = field(default_factory=dict)
    """The initialize result exactly as received."""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InitializeResult":
        """Create from the initialize response result."""
        server_info = data.get("serverInfo")
        capabilities = data.get("capabilities")
        return cls(
            protocol_version=data.get("protocolVersion", ""),
            server_info=ServerInfo.from_dict(server_info if isinstance(server_info, dict) else {}),
            capabilities=capabilities if isinstance(capabilities, dict) else {},
            instructions=data.get("instructions"),
            raw=data,
        )

    def __str__(self) -> str:
        return (
            f"InitializeResult(version={self.protocol_version}, "
            f"server={self.server_info}, "
            f"capabilities={sorted(self.capabilities)})"
        )
