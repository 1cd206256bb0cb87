"""Stream state machine for managing state transitions."""

from app.schemas import StreamState


class StreamStateMachine:
    """State machine for managing stream session state transitions.

    State flow with triggers:
    - CREATED (session reserved by create_session()) -> ACTIVE (transcoder spawned) | TERMINATING
    - ACTIVE -> TERMINATING (client disconnect, fatal diagnostic line, process exit)
    - TERMINATING -> CLOSED (stdin closed, process signalled, table entry released)
    - CLOSED is terminal

    Detailed triggers:
    1. CREATED: Set when create_session() reserves the stream id
    2. ACTIVE: Set once the transcoder process has been spawned
    3. TERMINATING: Set by remove_session(), whichever trigger arrives first
    4. CLOSED: Set by remove_session() once teardown has finished
    """

    TRANSITIONS: dict[StreamState, set[StreamState]] = {
        StreamState.CREATED: {
            StreamState.ACTIVE,
            StreamState.TERMINATING,
        },
        StreamState.ACTIVE: {StreamState.TERMINATING},
        StreamState.TERMINATING: {StreamState.CLOSED},
        StreamState.CLOSED: set(),
    }

    # States in which frames are still forwarded to the transcoder
    ACCEPTING_STATES: set[StreamState] = {StreamState.ACTIVE}

    @classmethod
    def can_transition(cls, current: StreamState, new: StreamState) -> bool:
        """Check if state transition is valid.

        Args:
            current: Current stream state
            new: Target state to transition to

        Returns:
            True if transition is valid, False otherwise
        """
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_accepting(cls, state: StreamState) -> bool:
        return state in cls.ACCEPTING_STATES

    @classmethod
    def is_tearing_down(cls, state: StreamState) -> bool:
        return state in {StreamState.TERMINATING, StreamState.CLOSED}

    @classmethod
    def get_valid_transitions(cls, state: StreamState) -> set[StreamState]:
        return cls.TRANSITIONS.get(state, set())
