"""HTTP+SSE transport implementation for MCP."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

import httpx

from mcplite.transport.base import (
    ConnectionError,
    TimeoutError,
    Transport,
    TransportError,
)
from mcplite.transport.types import TransportConfig, TransportEventType

logger = logging.getLogger(__name__)


class SSETransport(Transport):
    """
    HTTP with Server-Sent Events.

    - GET {url}/sse opens a long-lived event stream for server-to-client
      traffic. The server first sends an ``endpoint`` event naming the URL
      to POST to, then ``message`` events carrying JSON-RPC payloads.
    - Client-to-server messages are individual HTTP POSTs with a JSON body.
    """

    def __init__(
        self,
        config: TransportConfig,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: Transport configuration.
            http_transport: Optional httpx transport (e.g. httpx.MockTransport).
        """
        super().__init__(config)
        self._http_transport = http_transport
        self._client: httpx.AsyncClient | None = None
        self._stream_response: httpx.Response | None = None
        self._reader_task: asyncio.Task | None = None
        self._connected: bool = False
        self._closing: bool = False

    async def connect(self) -> None:
        """
        Open the event stream.

        Raises:
            ConnectionError: If the server refuses the stream.
            TimeoutError: If the server does not answer in time.
        """
        if self._connected:
            return

        self._closing = False
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=self.config.connect_timeout,
                read=self.config.timeout,
                write=self.config.timeout,
                pool=self.config.timeout,
            ),
            headers=self.config.headers,
            verify=self.config.verify_ssl,
            transport=self._http_transport,
        )

        request = self._client.build_request(
            "GET",
            self.config.sse_url,
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            # The stream stays idle between events; never time out reads on it
            timeout=httpx.Timeout(
                self.config.timeout,
                connect=self.config.connect_timeout,
                read=None,
            ),
        )

        logger.debug(f"Opening event stream {self.config.sse_url}")
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            await self._close_client()
            raise TimeoutError(f"Timed out opening event stream: {e}", cause=e)
        except httpx.HTTPError as e:
            await self._close_client()
            raise ConnectionError(f"Failed to open event stream: {e}", cause=e)

        if response.status_code != 200:
            await response.aclose()
            await self._close_client()
            raise ConnectionError(
                f"Failed to open event stream: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        content_type = response.headers.get("Content-Type", "")
        if "text/event-stream" not in content_type:
            logger.warning(f"Event stream has unexpected Content-Type: {content_type!r}")

        self._stream_response = response
        self._connected = True
        await self._emit_event(TransportEventType.OPENED)

        self._reader_task = asyncio.create_task(
            self._read_stream(response),
            name="mcplite-sse-reader",
        )

    async def disconnect(self) -> None:
        """Close the event stream and the HTTP client."""
        if not self._connected and self._client is None:
            return

        self._closing = True
        self._connected = False

        # A handler running on the reader task may call disconnect(); the
        # task then finishes on its own once the handler returns.
        reader = self._reader_task
        self._reader_task = None
        if reader and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        if self._stream_response is not None:
            await self._stream_response.aclose()
            self._stream_response = None

        await self._close_client()
        logger.debug("Event stream closed")

    async def send(self, url: str, body: bytes) -> None:
        """
        POST one JSON-RPC message.

        Raises:
            TransportError: If not connected, on HTTP failure, or non-2xx status.
            TimeoutError: If the POST times out.
        """
        if not self._client or not self._connected:
            raise TransportError("Transport not connected")

        try:
            response = await self._client.post(
                url,
                content=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Request timed out: {e}", cause=e)
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error: {e}", cause=e)

        if response.is_error:
            raise TransportError(
                f"HTTP error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

    def is_connected(self) -> bool:
        """Check if the event stream is open."""
        return self._connected and not self._closing

    async def _close_client(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _read_stream(self, response: httpx.Response) -> None:
        """Deliver SSE events to handlers until the stream ends."""
        try:
            async for event in self._parse_sse_stream(response):
                event_type = event.get("event", "message")
                if event_type == "endpoint":
                    endpoint = event.get("data", "").strip()
                    logger.info(f"Message endpoint: {endpoint}")
                    await self._emit_event(TransportEventType.ENDPOINT, data=endpoint)
                elif event_type == "message":
                    if "data" in event:
                        await self._emit_event(TransportEventType.MESSAGE, data=event["data"])
                else:
                    logger.debug(f"Ignoring SSE event type: {event_type}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._closing:
                logger.error(f"SSE connection error: {e}")
                self._connected = False
                await self._emit_event(
                    TransportEventType.ERROR,
                    error=ConnectionError(f"Event stream failed: {e}", cause=e),
                )
            return

        if not self._closing:
            logger.info("Event stream closed by server")
            self._connected = False
            await self._emit_event(TransportEventType.CLOSED)

    async def _parse_sse_stream(self, response: httpx.Response) -> AsyncIterator[dict[str, str]]:
        """Split the byte stream into parsed SSE events."""
        buffer = ""
        carry = ""

        async for chunk in response.aiter_text():
            text = carry + chunk
            # A trailing CR may be the first half of a CRLF split across reads
            if text.endswith("\r"):
                text, carry = text[:-1], "\r"
            else:
                carry = ""
            buffer += text.replace("\r\n", "\n").replace("\r", "\n")
            for event in self._drain_events(buffer):
                yield event
            buffer = buffer.rsplit("\n\n", 1)[1] if "\n\n" in buffer else buffer

        if carry:
            for event in self._drain_events(buffer + "\n"):
                yield event

    def _drain_events(self, buffer: str) -> list[dict[str, str]]:
        """Parse every complete (blank-line terminated) event in buffer."""
        complete = buffer.split("\n\n")[:-1]
        return [event for event in map(self._parse_sse_event, complete) if event]

    def _parse_sse_event(self, event_str: str) -> dict[str, str] | None:
        """
        Parse a single SSE event into its components.

        SSE format:
            event: <event-type>
            data: <data>
            id: <id>
        """
        if not event_str.strip():
            return None

        event: dict[str, str] = {}
        data_lines: list[str] = []

        for line in event_str.split("\n"):
            if not line or line.startswith(":"):
                # Comment or empty line
                continue

            field, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]

            if field == "data":
                # Data can span multiple lines
                data_lines.append(value)
            elif field in ("event", "id", "retry"):
                event[field] = value.strip()

        if data_lines:
            event["data"] = "\n".join(data_lines)

        return event if event else None
