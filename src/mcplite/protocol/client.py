"""MCP protocol client implementation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import urljoin

from mcplite import events
from mcplite.capabilities.client import ClientCapabilities
from mcplite.capabilities.negotiation import ClientInfo, InitializeResult
from mcplite.events import EventEmitter, EventHandler
from mcplite.protocol.builder import RequestBuilder
from mcplite.protocol.correlation import Completion, PendingRequests
from mcplite.protocol.dispatch import Dispatcher
from mcplite.protocol.errors import INTERNAL_ERROR, MCPError
from mcplite.protocol.messages import (
    JSONRPCRequest,
    JSONRPCResponse,
    Outbound,
    RequestId,
    decode_payload,
    encode_message,
)
from mcplite.protocol.state import ProtocolState, ProtocolStateMachine, Session
from mcplite.transport.base import ConnectionError, Transport, TransportError
from mcplite.transport.sse import SSETransport
from mcplite.transport.types import TransportConfig, TransportEvent, TransportEventType

logger = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    """Client-side protocol settings."""

    request_timeout: float = 30.0
    """Default time to wait for a response, in seconds."""

    connect_timeout: float = 30.0
    """Time allowed for connect() to reach READY, in seconds."""

    client_info: ClientInfo = field(default_factory=ClientInfo)
    """Identity sent in the initialize request."""

    capabilities: ClientCapabilities = field(default_factory=ClientCapabilities)
    """Capabilities declared in the initialize request."""

    roots: list[dict[str, Any]] = field(default_factory=list)
    """Answer to server roots/list requests."""

    forward_server_logs: bool = True
    """Re-emit server log notifications through Python logging."""

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")


class MCPClient:
    """
    Core MCP protocol client.

    Drives the connect -> initialize -> ready handshake, correlates responses
    with outstanding requests, answers or surfaces server-initiated requests,
    and publishes server notifications as events.

    Example:
        client = MCPClient("http://localhost:8080")
        client.on(events.PROGRESS, print)
        await client.connect()
        tools = await client.list_tools()
        result = await client.call_tool("add", {"a": 33, "b": 55})
        await client.disconnect()
    """

    def __init__(
        self,
        transport: Transport | str,
        config: ClientConfig | None = None,
    ):
        """
        Initialize MCP client.

        Args:
            transport: Transport to use, or a server base URL for SSETransport.
            config: Client configuration.
        """
        if isinstance(transport, str):
            transport = SSETransport(TransportConfig(url=transport))

        self.transport = transport
        self.config = config or ClientConfig()

        self._state = ProtocolStateMachine()
        self._session = Session(self._state)
        self._emitter = EventEmitter()
        self._builder = RequestBuilder()
        self._pending = PendingRequests(default_timeout=self.config.request_timeout)
        self._dispatcher = Dispatcher(
            self._pending,
            self._emitter,
            reply=self._send_message,
            roots=lambda: self.config.roots,
            forward_logs=self.config.forward_server_logs,
        )
        self._handshake: asyncio.Future[InitializeResult] | None = None
        self._handshake_task: asyncio.Task | None = None

        self.transport.on_event(self._on_transport_event)

    @property
    def state(self) -> ProtocolState:
        """Current protocol state."""
        return self._state.state

    @property
    def session(self) -> Session:
        """What is known about the current connection."""
        return self._session

    @property
    def is_ready(self) -> bool:
        """Check if client is ready for requests."""
        return self._state.is_ready

    @property
    def pending_count(self) -> int:
        """Number of requests awaiting a response."""
        return len(self._pending)

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe to a client event (see mcplite.events)."""
        self._emitter.on(event, handler)

    def once(self, event: str, handler: EventHandler) -> None:
        self._emitter.once(event, handler)

    def off(self, event: str, handler: EventHandler) -> None:
        self._emitter.off(event, handler)

    def on_state_change(
        self,
        callback: Callable[[ProtocolState, ProtocolState], None],
    ) -> None:
        """Register callback for state changes."""
        self._state.on_transition(callback)

    def off_state_change(
        self,
        callback: Callable[[ProtocolState, ProtocolState], None],
    ) -> None:
        """Remove a callback registered with on_state_change()."""
        self._state.remove_listener(callback)

    async def connect(self) -> InitializeResult:
        """
        Open the connection and complete the initialize handshake.

        Returns:
            The server's initialize result.

        Raises:
            MCPError: If a connection is already open or being opened.
            ConnectionError: If the transport fails or the handshake does not
                complete within config.connect_timeout.
        """
        if not self._state.is_closed:
            raise MCPError(INTERNAL_ERROR, "Client already connected")

        self._session.clear()
        self._state.transition(ProtocolState.CONNECTING)
        self._handshake = asyncio.get_running_loop().create_future()
        handshake = self._handshake

        try:
            await self.transport.connect()
        except Exception as e:
            logger.error(f"Failed to connect: {e}")
            await self._fail(ConnectionError(f"Failed to connect: {e}", cause=e))
            return await handshake

        # A transport may already have delivered the endpoint during connect()
        if self._state.state == ProtocolState.CONNECTING:
            self._state.transition(ProtocolState.AWAITING_ENDPOINT)

        try:
            return await asyncio.wait_for(handshake, timeout=self.config.connect_timeout)
        except asyncio.TimeoutError:
            error = ConnectionError(
                f"Handshake did not complete within {self.config.connect_timeout}s"
            )
            await self._fail(error)
            raise error

    async def disconnect(self) -> None:
        """
        Close the connection.

        Pending requests fail with ConnectionError. Calling this when idle or
        already disconnected does nothing.
        """
        if self._state.state in (ProtocolState.IDLE, ProtocolState.DISCONNECTED):
            return

        self._state.transition(ProtocolState.DISCONNECTED)
        error = ConnectionError("Client disconnected")
        self._pending.fail_all(error)
        self._abort_handshake(error)

        await self.transport.disconnect()

        logger.info("Disconnected from MCP server")
        self._emitter.emit(events.DISCONNECT)

    async def list_tools(self, timeout: float | None = None) -> list[dict[str, Any]]:
        """
        List the tools the server offers.

        Raises:
            MCPError: If not connected, on timeout, or on an error response.
        """
        self._require_ready()
        result = await self._send_request(self._builder.list_tools(), timeout)
        if not isinstance(result, dict):
            return []
        return result.get("tools", [])

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        with_progress: bool = True,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Invoke a tool on the server.

        Args:
            name: Tool name.
            arguments: Tool arguments.
            with_progress: Attach a progress token; the server's progress
                notifications then arrive as ``progress`` events.
            timeout: Seconds to wait (defaults to config.request_timeout).

        Returns:
            The tools/call result ({} if the server sent no object).

        Raises:
            MCPError: If not connected, on timeout, or on an error response.
        """
        self._require_ready()
        request = self._builder.call_tool(name, arguments, with_progress)
        result = await self._send_request(request, timeout)
        return result if isinstance(result, dict) else {}

    async def ping(self, timeout: float | None = None) -> None:
        """Check that the server is responsive."""
        self._require_ready()
        await self._send_request(self._builder.ping(), timeout)

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Send an arbitrary request and wait for its result.

        Raises:
            MCPError: If not connected, on timeout, or on an error response.
        """
        self._require_ready()
        return await self._send_request(self._builder.request(method, params), timeout)

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification (fire-and-forget)."""
        self._require_ready()
        await self._send_message(self._builder.notification(method, params))

    async def respond(self, request_id: RequestId, result: Any) -> None:
        """Answer a server-initiated request, e.g. sampling/createMessage."""
        self._require_ready()
        await self._send_message(JSONRPCResponse.success(request_id, result))

    async def respond_error(
        self,
        request_id: RequestId,
        code: int,
        message: str,
        data: Any = None,
    ) -> None:
        """Answer a server-initiated request with an error."""
        self._require_ready()
        await self._send_message(
            JSONRPCResponse.error_response(request_id, code, message, data)
        )

    def _require_ready(self) -> None:
        if not self._state.is_ready:
            raise MCPError.not_connected()

    async def _send_request(
        self,
        request: JSONRPCRequest,
        timeout: float | None = None,
    ) -> Any:
        """Register, send, and wait for the matching response."""
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def complete(outcome: Completion) -> None:
            if future.done():
                return
            if isinstance(outcome, Exception):
                future.set_exception(outcome)
            elif outcome.is_error:
                error = outcome.error
                future.set_exception(MCPError(error.code, error.message, error.data))
            else:
                future.set_result(outcome.result)

        self._pending.register(request.id, complete, timeout)
        try:
            try:
                await self._send_message(request)
            except Exception as e:
                self._pending.discard(request.id, e)
            return await future
        finally:
            # Caller cancelled: drop the entry without leaving an unread error
            if not future.done():
                future.cancel()
            self._pending.discard(request.id, MCPError.cancelled())

    async def _send_message(self, message: Outbound) -> None:
        url = self._session.message_endpoint or self.transport.config.default_message_url
        logger.debug(f"Sending {message} to {url}")
        try:
            await self.transport.send(url, encode_message(message))
        except TransportError as e:
            logger.error(f"Error sending message: {e}")
            raise

    async def _on_transport_event(self, event: TransportEvent) -> None:
        if self._state.is_closed:
            logger.debug(f"Ignoring transport event while {self._state.state}: {event}")
            return

        if event.type == TransportEventType.ENDPOINT:
            self._on_endpoint(event.data or "")
        elif event.type == TransportEventType.MESSAGE:
            payload = decode_payload(event.data or "")
            if payload is not None:
                await self._dispatcher.dispatch(payload)
        elif event.type == TransportEventType.ERROR:
            error = event.error or ConnectionError("Event stream error")
            if not isinstance(error, ConnectionError):
                error = ConnectionError(f"Event stream error: {error}", cause=error)
            await self._fail(error)
        elif event.type == TransportEventType.CLOSED:
            await self._fail(ConnectionError("Event stream closed by server"))

    def _on_endpoint(self, endpoint: str) -> None:
        if self._state.state == ProtocolState.CONNECTING:
            self._state.transition(ProtocolState.AWAITING_ENDPOINT)
        if self._state.state != ProtocolState.AWAITING_ENDPOINT:
            logger.warning(f"Ignoring endpoint event while {self._state.state}: {endpoint}")
            return
        if not endpoint:
            logger.warning("Ignoring endpoint event with no URL")
            return

        self._session.message_endpoint = urljoin(self.transport.config.sse_url, endpoint)
        logger.debug(f"Message endpoint resolved to {self._session.message_endpoint}")
        self._state.transition(ProtocolState.INITIALIZING)
        # Runs beside the reader so the initialize response can still arrive
        self._handshake_task = asyncio.create_task(
            self._initialize(),
            name="mcplite-initialize",
        )

    async def _initialize(self) -> None:
        request = self._builder.initialize(self.config.capabilities, self.config.client_info)
        try:
            result = await self._send_request(request)
            if not isinstance(result, dict):
                raise MCPError(INTERNAL_ERROR, f"Invalid initialize result: {result!r}")
            initialize_result = InitializeResult.from_dict(result)
            await self._send_message(self._builder.initialized())
        except Exception as e:
            logger.error(f"Initialization failed: {e}")
            await self._fail(ConnectionError(f"Initialization failed: {e}", cause=e))
            return

        if self._state.state != ProtocolState.INITIALIZING:
            return

        self._session.server_capabilities = initialize_result.capabilities
        self._session.server_info = initialize_result.server_info
        self._session.protocol_version = initialize_result.protocol_version
        self._session.instructions = initialize_result.instructions
        self._state.transition(ProtocolState.READY)

        logger.info(f"Connected to server: {initialize_result.server_info}")
        logger.debug(f"Server capabilities: {initialize_result.capabilities}")
        self._emitter.emit(events.CONNECT, result)

        if self._handshake is not None and not self._handshake.done():
            self._handshake.set_result(initialize_result)

    async def _fail(self, error: ConnectionError) -> None:
        """Tear down after a connection-level failure."""
        if not (self._state.is_handshaking or self._state.is_ready):
            return

        self._state.transition(ProtocolState.FAILED)
        self._pending.fail_all(error)
        self._abort_handshake(error)
        self._emitter.emit(events.ERROR, error)
        await self.transport.disconnect()

    def _abort_handshake(self, error: Exception) -> None:
        task = self._handshake_task
        self._handshake_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        if self._handshake is not None and not self._handshake.done():
            self._handshake.set_exception(error)

    async def __aenter__(self) -> "MCPClient":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.disconnect()
