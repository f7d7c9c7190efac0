"""Routing of inbound envelopes to the correlation table and event handlers."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from mcplite import events
from mcplite.events import EventEmitter
from mcplite.protocol.correlation import PendingRequests
from mcplite.protocol.errors import MCPError
from mcplite.protocol.messages import (
    Envelope,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    MalformedMessage,
)
from mcplite.utilities.server_logging import forward_to_python
from mcplite.utilities.types import LogMessage, ProgressInfo, ResourceUpdate

logger = logging.getLogger(__name__)

ReplySender = Callable[[JSONRPCResponse], Awaitable[None]]
RootsProvider = Callable[[], list[dict[str, Any]]]


class Dispatcher:
    """
    Classifies each inbound envelope and routes it.

    - Responses complete their pending request.
    - Notifications become typed events.
    - Server requests are answered (ping, roots/list, unknown methods) and/or
      surfaced as events (sampling/createMessage, roots/list).
    - Malformed input is logged and dropped.

    Nothing that arrives from the server can make dispatch() raise.
    """

    def __init__(
        self,
        pending: PendingRequests,
        emitter: EventEmitter,
        reply: ReplySender,
        roots: RootsProvider | None = None,
        forward_logs: bool = True,
    ):
        """
        Args:
            pending: Correlation table that receives responses.
            emitter: Where protocol events are published.
            reply: Coroutine function that sends a response to the server.
            roots: Supplies the answer to roots/list (empty list by default).
            forward_logs: Re-emit server log messages through Python logging.
        """
        self.pending = pending
        self.emitter = emitter
        self._reply = reply
        self._roots = roots or list
        self._forward_logs = forward_logs

        self._notification_handlers: dict[str, Callable[[dict[str, Any]], None]] = {
            "notifications/resources/list_changed": self._on_resource_list_changed,
            "notifications/resources/updated": self._on_resource_updated,
            "notifications/tools/list_changed": self._on_tool_list_changed,
            "notifications/prompts/list_changed": self._on_prompt_list_changed,
            "notifications/progress": self._on_progress,
            "notifications/message": self._on_log_message,
        }
        self._request_handlers: dict[str, Callable[[JSONRPCRequest], Awaitable[None]]] = {
            "ping": self._on_ping,
            "sampling/createMessage": self._on_sampling,
            "roots/list": self._on_roots_list,
        }

    async def dispatch(self, message: Envelope | list[Envelope]) -> None:
        """
        Route one decoded payload.

        Batches are handled element by element, in order; a failure on one
        element is logged and the rest are still processed.
        """
        if isinstance(message, list):
            for item in message:
                try:
                    await self._dispatch_one(item)
                except Exception:
                    logger.exception(f"Error handling batch element: {item}")
            return

        try:
            await self._dispatch_one(message)
        except Exception:
            logger.exception(f"Error handling message: {message}")

    async def _dispatch_one(self, message: Envelope) -> None:
        if isinstance(message, JSONRPCNotification):
            self._handle_notification(message)
        elif isinstance(message, JSONRPCResponse):
            self.pending.resolve(message.id, message)
        elif isinstance(message, JSONRPCRequest):
            await self._handle_server_request(message)
        elif isinstance(message, MalformedMessage):
            logger.warning(f"Unhandled message ({message.reason}): {message.raw!r}")
        else:
            logger.warning(f"Unhandled message: {message!r}")

    # Notifications

    def _handle_notification(self, notification: JSONRPCNotification) -> None:
        handler = self._notification_handlers.get(notification.method)
        if handler is None:
            logger.info(f"Received notification: {notification.method}")
            return
        params = notification.params if notification.params is not None else {}
        if not isinstance(params, dict):
            logger.warning(f"Discarding {notification.method} with non-object params")
            return
        handler(params)

    def _on_resource_list_changed(self, params: dict[str, Any]) -> None:
        logger.info("Resource list changed")
        self.emitter.emit(events.RESOURCE_LIST_CHANGED, params)

    def _on_resource_updated(self, params: dict[str, Any]) -> None:
        try:
            update = ResourceUpdate.from_dict(params)
        except KeyError as e:
            logger.warning(f"Invalid resource update notification: missing {e}")
            return
        logger.info(f"Resource updated: {update.uri}")
        self.emitter.emit(events.RESOURCE_UPDATED, update)

    def _on_tool_list_changed(self, params: dict[str, Any]) -> None:
        logger.info("Tool list changed")
        self.emitter.emit(events.TOOL_LIST_CHANGED, params)

    def _on_prompt_list_changed(self, params: dict[str, Any]) -> None:
        logger.info("Prompt list changed")
        self.emitter.emit(events.PROMPT_LIST_CHANGED, params)

    def _on_progress(self, params: dict[str, Any]) -> None:
        try:
            info = ProgressInfo.from_dict(params)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Invalid progress notification: {e!r}")
            return
        logger.debug(f"Progress [{info.progress_token}]: {info}")
        self.emitter.emit(events.PROGRESS, info)

    def _on_log_message(self, params: dict[str, Any]) -> None:
        try:
            message = LogMessage.from_dict(params)
        except (KeyError, ValueError) as e:
            logger.warning(f"Invalid log notification: {e!r}")
            return
        if self._forward_logs:
            forward_to_python(message)
        self.emitter.emit(events.MESSAGE, message)

    # Server-initiated requests

    async def _handle_server_request(self, request: JSONRPCRequest) -> None:
        handler = self._request_handlers.get(request.method)
        if handler is None:
            logger.warning(f"Unsupported server request method: {request.method}")
            error = MCPError.method_not_found(request.method)
            await self._send_reply(
                JSONRPCResponse.error_response(request.id, error.code, error.message)
            )
            return
        await handler(request)

    async def _on_ping(self, request: JSONRPCRequest) -> None:
        await self._send_reply(JSONRPCResponse.success(request.id, {}))

    async def _on_sampling(self, request: JSONRPCRequest) -> None:
        # Answered by the application through MCPClient.respond(), if at all
        logger.info(f"Server requested LLM sampling: {request}")
        self.emitter.emit(events.SAMPLING_REQUEST, request)

    async def _on_roots_list(self, request: JSONRPCRequest) -> None:
        logger.info("Server requested roots list")
        self.emitter.emit(events.ROOTS_LIST_REQUEST, request)
        await self._send_reply(
            JSONRPCResponse.success(request.id, {"roots": list(self._roots())})
        )

    async def _send_reply(self, response: JSONRPCResponse) -> None:
        try:
            await self._reply(response)
        except Exception as e:
            logger.error(f"Failed to send {response}: {e}")
