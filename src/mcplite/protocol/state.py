"""Protocol state machine and session record for the MCP handshake."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable

from mcplite.capabilities.negotiation import ServerInfo

logger = logging.getLogger(__name__)


class ProtocolState(Enum):
    """
    Connection lifecycle states.

    State transitions:
        IDLE -> CONNECTING -> AWAITING_ENDPOINT -> INITIALIZING -> READY

    FAILED and DISCONNECTED can be reached from any state past IDLE. A new
    connect() starts again from either of them.
    """

    IDLE = auto()
    CONNECTING = auto()
    AWAITING_ENDPOINT = auto()
    INITIALIZING = auto()
    READY = auto()
    FAILED = auto()
    DISCONNECTED = auto()

    def __str__(self) -> str:
        return self.name


class InvalidStateTransition(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: ProtocolState, to_state: ProtocolState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid state transition: {from_state.name} -> {to_state.name}"
        )


# Type for state transition callbacks
StateTransitionCallback = Callable[[ProtocolState, ProtocolState], None]

_TERMINAL = [ProtocolState.FAILED, ProtocolState.DISCONNECTED]


class ProtocolStateMachine:
    """
    Manages the connection lifecycle state.

    Enforces valid state transitions and notifies listeners
    when transitions occur.
    """

    VALID_TRANSITIONS: dict[ProtocolState, list[ProtocolState]] = {
        ProtocolState.IDLE: [ProtocolState.CONNECTING],
        ProtocolState.CONNECTING: [ProtocolState.AWAITING_ENDPOINT, *_TERMINAL],
        ProtocolState.AWAITING_ENDPOINT: [ProtocolState.INITIALIZING, *_TERMINAL],
        ProtocolState.INITIALIZING: [ProtocolState.READY, *_TERMINAL],
        ProtocolState.READY: list(_TERMINAL),
        ProtocolState.FAILED: [ProtocolState.CONNECTING, ProtocolState.DISCONNECTED],
        ProtocolState.DISCONNECTED: [ProtocolState.CONNECTING],
    }

    def __init__(self, initial_state: ProtocolState = ProtocolState.IDLE):
        self._state = initial_state
        self._listeners: list[StateTransitionCallback] = []

    @property
    def state(self) -> ProtocolState:
        """Current protocol state."""
        return self._state

    @property
    def is_ready(self) -> bool:
        """Check if the handshake completed and requests may be sent."""
        return self._state == ProtocolState.READY

    @property
    def is_handshaking(self) -> bool:
        """Check if a connect() is still in progress."""
        return self._state in (
            ProtocolState.CONNECTING,
            ProtocolState.AWAITING_ENDPOINT,
            ProtocolState.INITIALIZING,
        )

    @property
    def is_closed(self) -> bool:
        """Check if there is no live connection."""
        return self._state in (ProtocolState.IDLE, *_TERMINAL)

    def can_transition_to(self, new_state: ProtocolState) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in self.VALID_TRANSITIONS.get(self._state, [])

    def transition(self, new_state: ProtocolState) -> None:
        """
        Transition to a new state.

        Args:
            new_state: The target state.

        Raises:
            InvalidStateTransition: If the transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidStateTransition(self._state, new_state)

        old_state = self._state
        self._state = new_state
        logger.debug(f"State {old_state} -> {new_state}")

        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception:
                logger.exception("State listener failed")

    def on_transition(self, callback: StateTransitionCallback) -> None:
        """
        Register a callback for state transitions.

        Args:
            callback: Function called with (old_state, new_state) on transitions.
        """
        self._listeners.append(callback)

    def remove_listener(self, callback: StateTransitionCallback) -> None:
        """Remove a previously registered callback."""
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    def __str__(self) -> str:
        return f"ProtocolStateMachine({self._state.name})"

    def __repr__(self) -> str:
        return f"ProtocolStateMachine(state={self._state!r})"


@dataclass
class Session:
    """
    What the client knows about the current connection.

    Filled in as the handshake progresses. ``connected`` is only True once
    the state machine reaches READY.
    """

    _machine: ProtocolStateMachine = field(repr=False)
    message_endpoint: str | None = None
    server_capabilities: dict[str, Any] | None = None
    server_info: ServerInfo | None = None
    protocol_version: str | None = None
    instructions: str | None = None

    @property
    def connected(self) -> bool:
        return self._machine.is_ready

    def clear(self) -> None:
        """Forget everything learned from a previous connection."""
        self.message_endpoint = None
        self.server_capabilities = None
        self.server_info = None
        self.protocol_version = None
        self.instructions = None
