"""Transport layer types and configuration."""

from dataclasses import dataclass, field
from enum import Enum, auto
from urllib.parse import urlparse


class TransportEventType(Enum):
    """Kinds of events a transport delivers to its subscriber."""

    OPENED = auto()
    ENDPOINT = auto()
    MESSAGE = auto()
    ERROR = auto()
    CLOSED = auto()


@dataclass
class TransportEvent:
    """Event pushed from the server side of a transport."""

    type: TransportEventType
    timestamp: float
    data: str | None = None
    error: Exception | None = None

    def __str__(self) -> str:
        base = f"[{self.type.name}]"
        if self.data:
            base += f" {self.data}"
        if self.error:
            base += f" error={self.error}"
        return base


@dataclass
class TransportConfig:
    """Configuration for the MCP transport layer."""

    url: str
    """Base URL of the MCP server (must be https:// for remote servers)."""

    timeout: float = 30.0
    """Timeout for POSTs and SSE reads, in seconds."""

    connect_timeout: float = 10.0
    """Connection establishment timeout in seconds."""

    headers: dict[str, str] = field(default_factory=dict)
    """Additional HTTP headers to include in requests."""

    sse_path: str = "/sse"
    """Path of the event stream, relative to url."""

    message_path: str = "/message"
    """Default POST path, used until the server announces its own endpoint."""

    verify_ssl: bool = True
    """Whether to verify SSL certificates."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.url:
            raise ValueError("url is required")
        self.url = self.url.rstrip("/")
        # Allow http:// only for localhost development
        if self.url.startswith("http://") and not self._is_localhost():
            raise ValueError("Remote connections must use https://")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")

    @property
    def sse_url(self) -> str:
        return f"{self.url}{self.sse_path}"

    @property
    def default_message_url(self) -> str:
        return f"{self.url}{self.message_path}"

    def _is_localhost(self) -> bool:
        """Check if URL points to localhost."""
        host = urlparse(self.url).hostname or ""
        return host in ("localhost", "127.0.0.1", "::1", "[::1]")
