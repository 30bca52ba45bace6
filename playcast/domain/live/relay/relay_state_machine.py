"""Relay session state machine."""

from playcast.schemas import RelayState


class RelayStateMachine:
    """State machine for live relay session transitions.

    State flow with triggers:
    - SCHEDULED -> ACTIVE (external scheduler or restart) | FINALIZED (stop) | ERROR
    - ACTIVE -> FINALIZED (stop) | ERROR (process lost or restart failed)
    - FINALIZED/ERROR -> ACTIVE (restart re-registers the engine push entry)

    Unlike transmissions, relay FINALIZED and ERROR are not terminal: a relay
    pushed by the engine can be restarted in place.
    """

    TRANSITIONS: dict[RelayState, set[RelayState]] = {
        RelayState.SCHEDULED: {RelayState.ACTIVE, RelayState.FINALIZED, RelayState.ERROR},
        RelayState.ACTIVE: {RelayState.FINALIZED, RelayState.ERROR},
        RelayState.FINALIZED: {RelayState.ACTIVE, RelayState.ERROR},
        RelayState.ERROR: {RelayState.ACTIVE, RelayState.FINALIZED},
    }

    STOPPABLE_STATES: set[RelayState] = {RelayState.SCHEDULED, RelayState.ACTIVE}

    @classmethod
    def can_transition(cls, current: RelayState, new: RelayState) -> bool:
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def get_valid_transitions(cls, state: RelayState) -> set[RelayState]:
        return cls.TRANSITIONS.get(state, set())

    @classmethod
    def is_stoppable(cls, state: RelayState) -> bool:
        return state in cls.STOPPABLE_STATES
