"""Pytest configuration and fixtures."""

import asyncio
import json
from typing import Any

import pytest

from mcplite.lib import oj
from mcplite.protocol.client import ClientConfig, MCPClient
from mcplite.transport.base import Transport
from mcplite.transport.types import TransportConfig, TransportEventType

# Async test support
pytest_plugins = ["pytest_asyncio"]

BASE_URL = "http://localhost:8080"

INITIALIZE_RESULT = {
    "protocolVersion": "2025-03-26",
    "capabilities": {"tools": {"listChanged": True}, "logging": {}},
    "serverInfo": {"name": "test-server", "version": "1.2.3"},
}


class FakeServerTransport(Transport):
    """
    In-memory transport that plays a scripted server.

    - After connect(), announces ``endpoint`` (unless it is None).
    - Every sent request whose method is in ``results`` or ``errors`` is
      answered on the inbound side.
    - Everything sent is recorded in ``sent`` as (url, decoded message).
    """

    def __init__(self, url: str = BASE_URL):
        super().__init__(TransportConfig(url=url))
        self.endpoint: str | None = "/message?sessionId=abc"
        self.results: dict[str, Any] = {"initialize": INITIALIZE_RESULT}
        self.errors: dict[str, dict[str, Any]] = {}
        self.sent: list[tuple[str, dict]] = []
        self.connect_error: Exception | None = None
        self.send_error: Exception | None = None
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        self._tasks: set[asyncio.Task] = set()

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True
        if self.endpoint is not None:
            self._spawn(self.push_endpoint(self.endpoint))

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    async def send(self, url: str, body: bytes) -> None:
        if self.send_error is not None:
            raise self.send_error
        message = oj.loads(body)
        self.sent.append((url, message))

        method = message.get("method")
        if "id" not in message or method is None:
            return
        if method in self.errors:
            self._spawn(self.push({"jsonrpc": "2.0", "id": message["id"], "error": self.errors[method]}))
        elif method in self.results:
            self._spawn(self.push({"jsonrpc": "2.0", "id": message["id"], "result": self.results[method]}))

    def is_connected(self) -> bool:
        return self.connected

    async def push_endpoint(self, endpoint: str) -> None:
        await self._emit_event(TransportEventType.ENDPOINT, data=endpoint)

    async def push(self, payload: Any) -> None:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        await self._emit_event(TransportEventType.MESSAGE, data=data)

    async def push_error(self, error: Exception) -> None:
        await self._emit_event(TransportEventType.ERROR, error=error)

    async def push_closed(self) -> None:
        await self._emit_event(TransportEventType.CLOSED)

    def messages(self, method: str | None = None) -> list[dict]:
        """Sent messages, optionally filtered by method."""
        return [m for _, m in self.sent if method is None or m.get("method") == method]

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


async def settle(rounds: int = 20) -> None:
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def transport():
    return FakeServerTransport()


@pytest.fixture
def client(transport):
    return MCPClient(transport, ClientConfig(request_timeout=1.0, connect_timeout=1.0))
