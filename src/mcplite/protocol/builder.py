"""Builds the JSON-RPC messages for the client's own protocol operations."""

from __future__ import annotations

import itertools
import time
from typing import Any

from mcplite.capabilities.client import ClientCapabilities
from mcplite.capabilities.negotiation import PROTOCOL_VERSION, ClientInfo
from mcplite.protocol.messages import JSONRPCNotification, JSONRPCRequest


class RequestBuilder:
    """
    Assembles requests and notifications with client-assigned ids.

    Request ids come from a per-builder counter starting at 1 and are never
    reused. Progress tokens have their own sequence, so a token never
    collides with or stands in for a request id.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._tokens = itertools.count(1)

    def request(self, method: str, params: dict[str, Any] | None = None) -> JSONRPCRequest:
        """Build a request carrying the next id."""
        return JSONRPCRequest(id=next(self._ids), method=method, params=params or {})

    def notification(
        self,
        method: str,
        params: dict[str, Any] | None = None,
    ) -> JSONRPCNotification:
        """Build a notification (no id)."""
        return JSONRPCNotification(method=method, params=params or {})

    def progress_token(self) -> str:
        """
        Create a token the server can quote in progress notifications.

        Wall-clock milliseconds plus a sequence number, so tokens minted in
        the same millisecond still differ.
        """
        return f"{int(time.time() * 1000)}-{next(self._tokens)}"

    def initialize(
        self,
        capabilities: ClientCapabilities,
        client_info: ClientInfo,
        protocol_version: str = PROTOCOL_VERSION,
    ) -> JSONRPCRequest:
        """Build the initialize request that opens the handshake."""
        return self.request(
            "initialize",
            {
                "protocolVersion": protocol_version,
                "capabilities": capabilities.to_dict(),
                "clientInfo": client_info.to_dict(),
            },
        )

    def initialized(self) -> JSONRPCNotification:
        """Build the notification that completes the handshake."""
        return self.notification("notifications/initialized")

    def list_tools(self) -> JSONRPCRequest:
        return self.request("tools/list")

    def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        with_progress: bool = False,
    ) -> JSONRPCRequest:
        """
        Build a tools/call request.

        Args:
            name: Tool name.
            arguments: Tool arguments.
            with_progress: Attach ``_meta.progressToken`` so the server can
                send progress notifications for this call.
        """
        params: dict[str, Any] = {
            "name": name,
            "arguments": arguments if arguments is not None else {},
        }
        if with_progress:
            params["_meta"] = {"progressToken": self.progress_token()}
        return self.request("tools/call", params)

    def ping(self) -> JSONRPCRequest:
        return self.request("ping")
