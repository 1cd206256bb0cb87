"""Tests for StreamStateMachine state transitions."""

from app.domain.live.stream.stream_state_machine import StreamStateMachine
from app.schemas import StreamState


class TestCanTransition:
    """Tests for StreamStateMachine.can_transition method."""

    def test_created_to_active_valid(self):
        assert StreamStateMachine.can_transition(StreamState.CREATED, StreamState.ACTIVE) is True

    def test_created_to_terminating_valid(self):
        """Spawn failures tear down a session that never became active."""
        assert (
            StreamStateMachine.can_transition(StreamState.CREATED, StreamState.TERMINATING) is True
        )

    def test_active_to_terminating_valid(self):
        assert (
            StreamStateMachine.can_transition(StreamState.ACTIVE, StreamState.TERMINATING) is True
        )

    def test_terminating_to_closed_valid(self):
        assert (
            StreamStateMachine.can_transition(StreamState.TERMINATING, StreamState.CLOSED) is True
        )

    def test_active_to_created_invalid(self):
        """A process handle is never reassigned, so there is no way back."""
        assert StreamStateMachine.can_transition(StreamState.ACTIVE, StreamState.CREATED) is False

    def test_active_to_closed_invalid(self):
        assert StreamStateMachine.can_transition(StreamState.ACTIVE, StreamState.CLOSED) is False

    def test_terminating_to_active_invalid(self):
        assert (
            StreamStateMachine.can_transition(StreamState.TERMINATING, StreamState.ACTIVE) is False
        )

    def test_closed_no_transitions(self):
        for state in StreamState:
            assert StreamStateMachine.can_transition(StreamState.CLOSED, state) is False


class TestStatePredicates:
    def test_only_active_accepts_frames(self):
        assert [s for s in StreamState if StreamStateMachine.is_accepting(s)] == [
            StreamState.ACTIVE
        ]

    def test_tearing_down_states(self):
        assert StreamStateMachine.is_tearing_down(StreamState.TERMINATING) is True
        assert StreamStateMachine.is_tearing_down(StreamState.CLOSED) is True
        assert StreamStateMachine.is_tearing_down(StreamState.ACTIVE) is False
        assert StreamStateMachine.is_tearing_down(StreamState.CREATED) is False

    def test_get_valid_transitions(self):
        assert StreamStateMachine.get_valid_transitions(StreamState.ACTIVE) == {
            StreamState.TERMINATING
        }
        assert StreamStateMachine.get_valid_transitions(StreamState.CLOSED) == set()
