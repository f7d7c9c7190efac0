"""Request/response correlation table."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Union

from mcplite.protocol.errors import MCPError
from mcplite.protocol.messages import JSONRPCResponse, RequestId

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# Receives the matching response, or the exception that ended the request
Completion = Union[JSONRPCResponse, Exception]
CompletionCallback = Callable[[Completion], None]


@dataclass
class PendingRequest:
    """An outbound request still waiting for its response."""

    id: RequestId
    on_complete: CompletionCallback
    timer: asyncio.TimerHandle
    timeout: float


class PendingRequests:
    """
    Maps outstanding request ids to their completion callbacks.

    Each registered id completes exactly once: by a response, by its
    timeout firing, or by being failed when the connection goes away.
    Every path removes the entry before invoking the callback, so a
    second completion for the same id finds nothing.

    Must only be used from the event loop thread.
    """

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT):
        self.default_timeout = default_timeout
        self._pending: dict[RequestId, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    @property
    def pending_ids(self) -> list[RequestId]:
        """Ids currently awaiting completion."""
        return list(self._pending)

    def register(
        self,
        request_id: RequestId,
        on_complete: CompletionCallback,
        timeout: float | None = None,
    ) -> PendingRequest:
        """
        Track a request and arm its timeout.

        Args:
            request_id: Id of the outbound request.
            on_complete: Called once with the response or an exception.
            timeout: Seconds to wait (defaults to default_timeout).

        Returns:
            The pending entry.

        Raises:
            ValueError: If the id is already pending.
        """
        if request_id in self._pending:
            raise ValueError(f"Request id already pending: {request_id}")

        effective_timeout = timeout if timeout is not None else self.default_timeout
        loop = asyncio.get_running_loop()
        timer = loop.call_later(effective_timeout, self._expire, request_id)
        entry = PendingRequest(
            id=request_id,
            on_complete=on_complete,
            timer=timer,
            timeout=effective_timeout,
        )
        self._pending[request_id] = entry
        return entry

    def resolve(self, request_id: RequestId, response: JSONRPCResponse) -> bool:
        """
        Complete a pending request with its response.

        Unknown ids (late, duplicate or never sent) are logged and ignored.

        Returns:
            True if a pending request was completed.
        """
        entry = self._take(request_id)
        if entry is None:
            logger.warning(f"Received response for unknown request ID: {request_id}")
            return False

        logger.debug(f"Resolved {response}")
        entry.on_complete(response)
        return True

    def discard(self, request_id: RequestId, error: Exception) -> bool:
        """Fail one pending request, e.g. when sending it failed."""
        entry = self._take(request_id)
        if entry is None:
            return False
        entry.on_complete(error)
        return True

    def fail_all(self, error: Exception) -> int:
        """
        Fail every pending request with the same error.

        Returns:
            Number of requests failed.
        """
        count = 0
        for request_id in list(self._pending):
            if self.discard(request_id, error):
                count += 1
        if count:
            logger.debug(f"Failed {count} pending request(s): {error}")
        return count

    def _expire(self, request_id: RequestId) -> None:
        entry = self._take(request_id)
        if entry is None:
            return
        logger.warning(f"Request {request_id} timed out after {entry.timeout}s")
        entry.on_complete(MCPError.timeout(entry.timeout))

    def _take(self, request_id: RequestId) -> PendingRequest | None:
        entry = self._pending.pop(request_id, None)
        if entry is not None:
            entry.timer.cancel()
        return entry
