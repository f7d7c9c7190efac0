"""JSON-RPC 2.0 envelopes and the wire codec."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Union

from mcplite.lib import oj

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

RequestId = Union[int, str]


@dataclass
class JSONRPCRequest:
    """
    JSON-RPC 2.0 request message.

    Requests expect a response from the recipient.
    """

    id: RequestId
    method: str
    params: dict[str, Any] | None = None
    jsonrpc: str = field(default=JSONRPC_VERSION, init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
            "params": self.params if self.params is not None else {},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCRequest":
        """Create from JSON dict."""
        return cls(id=data["id"], method=data["method"], params=data.get("params"))

    def __str__(self) -> str:
        return f"Request({self.method}, id={self.id})"


@dataclass
class JSONRPCError:
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.data is not None:
            error["data"] = self.data
        return error

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCError":
        """Create from JSON dict."""
        return cls(
            code=data.get("code", -32603),
            message=data.get("message", "Unknown error"),
            data=data.get("data"),
        )


@dataclass
class JSONRPCResponse:
    """
    JSON-RPC 2.0 response message.

    Either result or error is set, never both.
    """

    id: RequestId
    result: Any = None
    error: JSONRPCError | None = None
    jsonrpc: str = field(default=JSONRPC_VERSION, init=False)

    @property
    def is_error(self) -> bool:
        """Check if this is an error response."""
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        msg: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
        }
        if self.error is not None:
            msg["error"] = self.error.to_dict()
        else:
            msg["result"] = self.result
        return msg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCResponse":
        """Create from JSON dict."""
        error = None
        if "error" in data:
            error = JSONRPCError.from_dict(data["error"])
        return cls(id=data["id"], result=data.get("result"), error=error)

    @classmethod
    def success(cls, id: RequestId, result: Any = None) -> "JSONRPCResponse":
        """Create a success response."""
        return cls(id=id, result=result if result is not None else {})

    @classmethod
    def error_response(
        cls,
        id: RequestId,
        code: int,
        message: str,
        data: Any = None,
    ) -> "JSONRPCResponse":
        """Create an error response."""
        return cls(id=id, error=JSONRPCError(code=code, message=message, data=data))

    def __str__(self) -> str:
        if self.is_error:
            return f"Response(id={self.id}, error={self.error.code})"
        return f"Response(id={self.id}, success)"


@dataclass
class JSONRPCNotification:
    """
    JSON-RPC 2.0 notification message.

    Notifications do not expect a response (no id field).
    """

    method: str
    params: dict[str, Any] | None = None
    jsonrpc: str = field(default=JSONRPC_VERSION, init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "params": self.params if self.params is not None else {},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JSONRPCNotification":
        """Create from JSON dict."""
        return cls(method=data["method"], params=data.get("params"))

    def __str__(self) -> str:
        return f"Notification({self.method})"


@dataclass
class MalformedMessage:
    """An inbound value that matches no JSON-RPC shape."""

    raw: Any
    reason: str

    def __str__(self) -> str:
        return f"Malformed({self.reason})"


Envelope = Union[JSONRPCRequest, JSONRPCResponse, JSONRPCNotification, MalformedMessage]
Outbound = Union[JSONRPCRequest, JSONRPCResponse, JSONRPCNotification]


def _valid_id(value: Any) -> bool:
    # bool is an int subclass but never a valid id
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def decode_message(data: Any) -> Envelope:
    """
    Classify one decoded JSON value into an envelope.

    Never raises: anything that is not a well-formed request, response or
    notification comes back as a MalformedMessage.

    Args:
        data: A value produced by JSON deserialization.

    Returns:
        The envelope variant matching the value's shape.
    """
    if not isinstance(data, dict):
        return MalformedMessage(raw=data, reason="not a JSON object")

    has_id = data.get("id") is not None
    has_method = "method" in data
    has_result = "result" in data
    has_error = "error" in data

    if has_method and not isinstance(data["method"], str):
        return MalformedMessage(raw=data, reason="method is not a string")
    if has_id and not _valid_id(data["id"]):
        return MalformedMessage(raw=data, reason="invalid id")

    if has_method and not has_id:
        return JSONRPCNotification.from_dict(data)

    if has_id and (has_result != has_error):
        if has_error and not isinstance(data["error"], dict):
            return MalformedMessage(raw=data, reason="error is not an object")
        return JSONRPCResponse.from_dict(data)

    if has_id and has_method:
        return JSONRPCRequest.from_dict(data)

    return MalformedMessage(raw=data, reason="cannot determine message type")


def decode_payload(payload: str | bytes) -> Envelope | list[Envelope] | None:
    """
    Decode one inbound payload: a single envelope or a batch.

    Args:
        payload: Raw JSON text from the event stream.

    Returns:
        An envelope, a list of envelopes for a batch, or None when the
        payload is not valid JSON.
    """
    try:
        data = oj.loads(payload)
    except oj.JSONDecodeError as e:
        logger.warning(f"Discarding undecodable payload: {e}")
        return None

    if isinstance(data, list):
        return [decode_message(item) for item in data]
    return decode_message(data)


def encode_message(message: Outbound) -> bytes:
    """Serialize an outbound envelope to JSON bytes."""
    return oj.dumps(message.to_dict())
