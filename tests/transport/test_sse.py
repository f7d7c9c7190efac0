"""Tests for the HTTP+SSE transport."""

import asyncio

import httpx
import pytest

from mcplite.transport import (
    ConnectionError,
    SSETransport,
    TimeoutError,
    TransportConfig,
    TransportError,
    TransportEventType,
)

SSE_BODY = (
    "event: endpoint\n"
    "data: /message?sessionId=abc\n"
    "\n"
    ": keep-alive\n"
    "\n"
    "event: message\n"
    'data: {"jsonrpc": "2.0", "method": "notifications/tools/list_changed"}\n'
    "\n"
    'data: {"jsonrpc": "2.0", "id": 1, "result": {}}\r\n'
    "\r\n"
    "event: heartbeat\n"
    "data: ignored\n"
    "\n"
)


class FakeServer:
    """Answers the event stream GET and records POSTs."""

    def __init__(
        self,
        body: str = SSE_BODY,
        stream_status: int = 200,
        post_status: int = 202,
        hold_open: bool = False,
    ):
        self.body = body
        self.stream_status = stream_status
        self.post_status = post_status
        self.hold_open = hold_open
        self.posts: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(
                self.stream_status,
                headers={"Content-Type": "text/event-stream"},
                content=self._stream() if self.hold_open else self.body.encode(),
            )
        self.posts.append(request)
        return httpx.Response(self.post_status)

    async def _stream(self):
        yield self.body.encode()
        # Stay open until the client goes away
        await asyncio.Event().wait()


def make_transport(server: FakeServer) -> SSETransport:
    return SSETransport(
        TransportConfig(url="http://localhost:8080"),
        http_transport=httpx.MockTransport(server),
    )


class TestTransportConfig:
    """Tests for TransportConfig validation."""

    def test_valid_https_url(self):
        config = TransportConfig(url="https://example.com/mcp/")
        assert config.url == "https://example.com/mcp"
        assert config.sse_url == "https://example.com/mcp/sse"
        assert config.default_message_url == "https://example.com/mcp/message"

    def test_localhost_http_allowed(self):
        config = TransportConfig(url="http://localhost:8080")
        assert config.url == "http://localhost:8080"

    def test_127_0_0_1_http_allowed(self):
        config = TransportConfig(url="http://127.0.0.1:8080")
        assert config.url == "http://127.0.0.1:8080"

    def test_remote_http_rejected(self):
        with pytest.raises(ValueError, match="must use https"):
            TransportConfig(url="http://example.com")

    def test_empty_url_rejected(self):
        with pytest.raises(ValueError, match="url is required"):
            TransportConfig(url="")

    def test_invalid_timeout_rejected(self):
        with pytest.raises(ValueError, match="timeout must be positive"):
            TransportConfig(url="https://example.com", timeout=0)

    def test_invalid_connect_timeout_rejected(self):
        with pytest.raises(ValueError, match="connect_timeout must be positive"):
            TransportConfig(url="https://example.com", connect_timeout=-1)

    def test_custom_paths(self):
        config = TransportConfig(url="https://example.com", sse_path="/events", message_path="/rpc")
        assert config.sse_url == "https://example.com/events"
        assert config.default_message_url == "https://example.com/rpc"


class TestSSEParsing:
    """Tests for SSE event parsing."""

    @pytest.fixture
    def transport(self):
        return SSETransport(TransportConfig(url="https://example.com"))

    def test_parse_simple_event(self, transport):
        event_str = 'data: {"jsonrpc": "2.0", "result": {}, "id": 1}'
        result = transport._parse_sse_event(event_str)
        assert result == {"data": '{"jsonrpc": "2.0", "result": {}, "id": 1}'}

    def test_parse_endpoint_event(self, transport):
        result = transport._parse_sse_event("event: endpoint\ndata: /message?sessionId=1")
        assert result == {"event": "endpoint", "data": "/message?sessionId=1"}

    def test_parse_multiline_data(self, transport):
        result = transport._parse_sse_event("data: line1\ndata: line2\ndata: line3")
        assert result["data"] == "line1\nline2\nline3"

    def test_only_one_leading_space_stripped(self, transport):
        result = transport._parse_sse_event("data:  indented")
        assert result["data"] == " indented"

    def test_parse_event_with_id(self, transport):
        result = transport._parse_sse_event("id: 42\ndata: {}")
        assert result["id"] == "42"

    def test_skip_comments(self, transport):
        result = transport._parse_sse_event(": this is a comment\ndata: {}")
        assert result == {"data": "{}"}

    def test_empty_event_returns_none(self, transport):
        assert transport._parse_sse_event("") is None
        assert transport._parse_sse_event("   ") is None
        assert transport._parse_sse_event(": only a comment") is None


class TestSSETransport:
    """Tests for SSETransport against a mocked HTTP server."""

    @pytest.mark.asyncio
    async def test_stream_events_delivered_in_order(self):
        transport = make_transport(FakeServer())
        received = []
        closed = asyncio.Event()

        async def handler(event):
            received.append(event)
            if event.type == TransportEventType.CLOSED:
                closed.set()

        transport.on_event(handler)
        await transport.connect()
        await asyncio.wait_for(closed.wait(), timeout=1.0)

        assert [e.type for e in received] == [
            TransportEventType.OPENED,
            TransportEventType.ENDPOINT,
            TransportEventType.MESSAGE,
            TransportEventType.MESSAGE,
            TransportEventType.CLOSED,
        ]
        assert received[1].data == "/message?sessionId=abc"
        assert "list_changed" in received[2].data
        assert received[3].data == '{"jsonrpc": "2.0", "id": 1, "result": {}}'
        assert not transport.is_connected()
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_stream_request_headers(self):
        seen = []

        def server(request):
            seen.append(request)
            return httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=b"")

        transport = SSETransport(
            TransportConfig(url="http://localhost:8080", headers={"Authorization": "Bearer t"}),
            http_transport=httpx.MockTransport(server),
        )
        await transport.connect()
        await transport.disconnect()

        assert str(seen[0].url) == "http://localhost:8080/sse"
        assert seen[0].headers["Accept"] == "text/event-stream"
        assert seen[0].headers["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_non_200_stream_rejected(self):
        transport = make_transport(FakeServer(stream_status=404))

        with pytest.raises(ConnectionError, match="HTTP 404") as exc_info:
            await transport.connect()

        assert exc_info.value.status_code == 404
        assert not transport.is_connected()

    @pytest.mark.asyncio
    async def test_network_failure_rejected(self):
        def server(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = SSETransport(
            TransportConfig(url="http://localhost:8080"),
            http_transport=httpx.MockTransport(server),
        )
        with pytest.raises(ConnectionError, match="connection refused"):
            await transport.connect()

    @pytest.mark.asyncio
    async def test_connect_timeout(self):
        def server(request):
            raise httpx.ConnectTimeout("too slow", request=request)

        transport = SSETransport(
            TransportConfig(url="http://localhost:8080"),
            http_transport=httpx.MockTransport(server),
        )
        with pytest.raises(TimeoutError):
            await transport.connect()

    @pytest.mark.asyncio
    async def test_send_posts_json_body(self):
        server = FakeServer(body="event: endpoint\ndata: /message\n\n", hold_open=True)
        transport = make_transport(server)
        await transport.connect()
        body = b'{"jsonrpc":"2.0","id":1,"method":"tools/list","params":{}}'

        await transport.send("http://localhost:8080/message?sessionId=abc", body)

        assert len(server.posts) == 1
        post = server.posts[0]
        assert str(post.url) == "http://localhost:8080/message?sessionId=abc"
        assert post.headers["Content-Type"] == "application/json"
        assert post.content == body
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_send_http_error(self):
        transport = make_transport(FakeServer(body="", post_status=500, hold_open=True))
        await transport.connect()

        with pytest.raises(TransportError, match="500") as exc_info:
            await transport.send("http://localhost:8080/message", b"{}")

        assert exc_info.value.status_code == 500
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_send_requires_connection(self):
        transport = make_transport(FakeServer())
        with pytest.raises(TransportError, match="not connected"):
            await transport.send("http://localhost:8080/message", b"{}")

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self):
        transport = make_transport(FakeServer(body=""))
        await transport.connect()

        await transport.disconnect()
        await transport.disconnect()

        assert not transport.is_connected()
        assert transport._client is None

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_stream(self):
        transport = make_transport(FakeServer())
        closed = asyncio.Event()
        messages = []

        async def broken(event):
            raise RuntimeError("handler bug")

        async def recorder(event):
            if event.type == TransportEventType.MESSAGE:
                messages.append(event.data)
            elif event.type == TransportEventType.CLOSED:
                closed.set()

        transport.on_event(broken)
        transport.on_event(recorder)
        await transport.connect()
        await asyncio.wait_for(closed.wait(), timeout=1.0)

        assert len(messages) == 2
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_crlf_split_across_reads(self):
        async def chunks():
            yield b"event: endpoint\r"
            yield b"\ndata: /message?sessionId=abc\r\n\r"
            yield b"\ndata: {}\r\n\r\n"

        def server(request):
            return httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=chunks())

        transport = SSETransport(
            TransportConfig(url="http://localhost:8080"),
            http_transport=httpx.MockTransport(server),
        )
        received = []
        closed = asyncio.Event()

        async def handler(event):
            received.append((event.type, event.data))
            if event.type == TransportEventType.CLOSED:
                closed.set()

        transport.on_event(handler)
        await transport.connect()
        await asyncio.wait_for(closed.wait(), timeout=1.0)

        assert received == [
            (TransportEventType.OPENED, None),
            (TransportEventType.ENDPOINT, "/message?sessionId=abc"),
            (TransportEventType.MESSAGE, "{}"),
            (TransportEventType.CLOSED, None),
        ]
        await transport.disconnect()

    @pytest.mark.asyncio
    async def test_bare_cr_line_endings(self):
        async def chunks():
            yield b"event: endpoint\rdata: /rpc\r\r"
            yield b"data: {}\r"
            yield b"\r"

        def server(request):
            return httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=chunks())

        transport = SSETransport(
            TransportConfig(url="http://localhost:8080"),
            http_transport=httpx.MockTransport(server),
        )
        received = []
        closed = asyncio.Event()

        async def handler(event):
            received.append((event.type, event.data))
            if event.type == TransportEventType.CLOSED:
                closed.set()

        transport.on_event(handler)
        await transport.connect()
        await asyncio.wait_for(closed.wait(), timeout=1.0)

        assert (TransportEventType.ENDPOINT, "/rpc") in received
        assert (TransportEventType.MESSAGE, "{}") in received
        await transport.disconnect()
