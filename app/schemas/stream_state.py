"""Stream session lifecycle states."""

from enum import Enum


class StreamState(str, Enum):
    """Stream session lifecycle states.

    State Transition Flow:

    CREATED → ACTIVE → TERMINATING → CLOSED
       ↓                    ↑
       └────────────────────┘

    State Descriptions:
    - CREATED: Session reserved in the table, transcoder not yet spawned.
    - ACTIVE: Transcoder running, frames are accepted.
    - TERMINATING: Teardown in progress, late frames are dropped.
    - CLOSED: Teardown complete, session removed from the table.

    Terminal states (no further transitions): CLOSED
    """

    CREATED = "created"
    ACTIVE = "active"
    TERMINATING = "terminating"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value


__all__ = ["StreamState"]
