"""Protocol error types and error codes."""

from dataclasses import dataclass
from typing import Any

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Implementation-defined codes (-32000 to -32099)
REQUEST_TIMEOUT = -32001
REQUEST_CANCELLED = -32002
NOT_CONNECTED = -32006

ERROR_MESSAGES = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    INTERNAL_ERROR: "Internal error",
    REQUEST_TIMEOUT: "Request timeout",
    REQUEST_CANCELLED: "Request cancelled",
    NOT_CONNECTED: "Not connected to MCP server",
}


@dataclass
class MCPError(Exception):
    """
    MCP protocol error.

    Raised when the server answers a request with an error object, when a
    request times out, or when an operation is attempted before the session
    is ready.
    """

    code: int
    message: str
    data: Any = None

    def __post_init__(self):
        super().__init__(self.message)

    @classmethod
    def method_not_found(cls, method: str) -> "MCPError":
        """Create a method not found error."""
        return cls(
            code=METHOD_NOT_FOUND,
            message=ERROR_MESSAGES[METHOD_NOT_FOUND],
            data={"method": method},
        )

    @classmethod
    def timeout(cls, timeout_seconds: float) -> "MCPError":
        """Create a request timeout error."""
        return cls(
            code=REQUEST_TIMEOUT,
            message=f"Request timed out after {timeout_seconds}s",
            data={"timeout": timeout_seconds},
        )

    @classmethod
    def cancelled(cls, reason: str | None = None) -> "MCPError":
        """Create a request cancelled error."""
        return cls(
            code=REQUEST_CANCELLED,
            message=reason or ERROR_MESSAGES[REQUEST_CANCELLED],
        )

    @classmethod
    def not_connected(cls) -> "MCPError":
        """Create the error raised when the session is not ready."""
        return cls(code=NOT_CONNECTED, message=ERROR_MESSAGES[NOT_CONNECTED])

    def __str__(self) -> str:
        base = f"MCPError({self.code}): {self.message}"
        if self.data:
            base += f" {self.data}"
        return base

    def __repr__(self) -> str:
        return f"MCPError(code={self.code}, message={self.message!r}, data={self.data})"
