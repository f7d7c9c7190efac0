"""Tests for the protocol state machine."""

import pytest

from mcplite.protocol.state import (
    InvalidStateTransition,
    ProtocolState,
    ProtocolStateMachine,
    Session,
)


def walk_to_ready(machine):
    for state in (
        ProtocolState.CONNECTING,
        ProtocolState.AWAITING_ENDPOINT,
        ProtocolState.INITIALIZING,
        ProtocolState.READY,
    ):
        machine.transition(state)


class TestProtocolStateMachine:
    def test_starts_idle(self):
        machine = ProtocolStateMachine()
        assert machine.state == ProtocolState.IDLE
        assert machine.is_closed
        assert not machine.is_ready

    def test_happy_path(self):
        machine = ProtocolStateMachine()
        walk_to_ready(machine)
        assert machine.is_ready
        assert not machine.is_handshaking

    def test_cannot_skip_handshake(self):
        machine = ProtocolStateMachine()
        machine.transition(ProtocolState.CONNECTING)
        with pytest.raises(InvalidStateTransition, match="CONNECTING -> READY"):
            machine.transition(ProtocolState.READY)

    @pytest.mark.parametrize(
        "state",
        [
            ProtocolState.CONNECTING,
            ProtocolState.AWAITING_ENDPOINT,
            ProtocolState.INITIALIZING,
            ProtocolState.READY,
        ],
    )
    def test_failed_and_disconnected_reachable(self, state):
        for terminal in (ProtocolState.FAILED, ProtocolState.DISCONNECTED):
            machine = ProtocolStateMachine(initial_state=state)
            assert machine.can_transition_to(terminal)

    def test_reconnect_after_failure_or_disconnect(self):
        for state in (ProtocolState.FAILED, ProtocolState.DISCONNECTED):
            machine = ProtocolStateMachine(initial_state=state)
            machine.transition(ProtocolState.CONNECTING)
            assert machine.is_handshaking

    def test_idle_cannot_disconnect(self):
        machine = ProtocolStateMachine()
        assert not machine.can_transition_to(ProtocolState.DISCONNECTED)

    def test_listeners_notified(self):
        machine = ProtocolStateMachine()
        seen = []
        machine.on_transition(lambda old, new: seen.append((old, new)))

        machine.transition(ProtocolState.CONNECTING)

        assert seen == [(ProtocolState.IDLE, ProtocolState.CONNECTING)]

    def test_removed_listener_not_notified(self):
        machine = ProtocolStateMachine()
        seen = []

        def listener(old, new):
            seen.append(new)

        machine.on_transition(listener)
        machine.remove_listener(listener)
        machine.remove_listener(listener)
        machine.transition(ProtocolState.CONNECTING)

        assert seen == []

    def test_listener_errors_do_not_block_transition(self):
        machine = ProtocolStateMachine()

        def broken(old, new):
            raise RuntimeError("listener bug")

        machine.on_transition(broken)
        machine.transition(ProtocolState.CONNECTING)
        assert machine.state == ProtocolState.CONNECTING


class TestSession:
    def test_connected_tracks_ready_state(self):
        machine = ProtocolStateMachine()
        session = Session(machine)
        assert not session.connected

        walk_to_ready(machine)
        assert session.connected

        machine.transition(ProtocolState.DISCONNECTED)
        assert not session.connected

    def test_clear(self):
        session = Session(ProtocolStateMachine(), message_endpoint="http://x/message")
        session.server_capabilities = {"tools": {}}
        session.clear()
        assert session.message_endpoint is None
        assert session.server_capabilities is None
