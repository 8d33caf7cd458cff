"""
Recording state machine shared by all helpers.

    Idle ──start_recording──▶ Recording ──stop_recording──▶ Ready
      │                           ▲                          │
      └──────activate_tape────────┼─────────▶ Ready ◀────────┤ activate_tape
                                  └──────start_recording─────┘

reset() returns to Idle from any state.
"""
import logging
from enum import Enum

from .exceptions import NotReadyError, RecordingStateError

logger = logging.getLogger(__name__)


class HelperState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    READY = "ready"


_TRANSITIONS = {
    HelperState.IDLE: {HelperState.RECORDING, HelperState.READY},
    HelperState.RECORDING: {HelperState.READY},
    HelperState.READY: {HelperState.RECORDING, HelperState.READY},
}


class RecordingStateMachine:
    def __init__(self):
        self.state = HelperState.IDLE

    def __repr__(self):
        return f"RecordingStateMachine({self.state.value})"

    def require(self, *allowed: HelperState, action: str):
        """Raise unless the current state is one of `allowed`."""
        if self.state in allowed:
            return
        names = " or ".join(s.value for s in allowed)
        message = f"{action} is only valid while {names}; helper is {self.state.value}"
        if allowed == (HelperState.READY,):
            raise NotReadyError(message)
        raise RecordingStateError(message)

    def can_transition(self, new_state: HelperState) -> bool:
        return new_state in _TRANSITIONS[self.state]

    def transition(self, new_state: HelperState):
        if not self.can_transition(new_state):
            raise RecordingStateError(
                f"Cannot move from {self.state.value} to {new_state.value}"
            )
        logger.debug("State %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def reset(self):
        self.state = HelperState.IDLE
