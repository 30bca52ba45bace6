"""Transmission state machine for managing lifecycle transitions."""

from enum import Enum

from playcast.schemas import TransmissionState


class TransmissionEvent(str, Enum):
    """Events that move a transmission through its lifecycle."""

    START = "start"
    START_UNCONFIRMED = "start_unconfirmed"
    STOP = "stop"
    PAUSE = "pause"
    RESUME = "resume"
    HANDOFF = "handoff"
    LOOP = "loop"
    AUTO_FINALIZE = "auto_finalize"

    def __str__(self) -> str:
        return self.value


class TransmissionStateMachine:
    """State machine for transmission lifecycle transitions.

    State flow with triggers:
    - (none) -> ACTIVE (start request, engine confirmed) | ERROR (start not confirmed)
    - ACTIVE -> FINALIZED (stop request, or reconciliation finds nothing to continue with)
    - ACTIVE -> PAUSED (pause request)
    - PAUSED -> ACTIVE (resume request)
    - ACTIVE -> ACTIVE (reconciliation hands off to the finalization playlist, or loops)
    - FINALIZED/ERROR are terminal states

    The 24h reconciliation ceiling is not an event; it cancels the loop only.
    """

    # Keyed by (current state, event); None is the state before a record exists
    TRANSITIONS: dict[tuple[TransmissionState | None, TransmissionEvent], TransmissionState] = {
        (None, TransmissionEvent.START): TransmissionState.ACTIVE,
        (None, TransmissionEvent.START_UNCONFIRMED): TransmissionState.ERROR,
        (TransmissionState.ACTIVE, TransmissionEvent.STOP): TransmissionState.FINALIZED,
        (TransmissionState.ACTIVE, TransmissionEvent.PAUSE): TransmissionState.PAUSED,
        (TransmissionState.PAUSED, TransmissionEvent.RESUME): TransmissionState.ACTIVE,
        (TransmissionState.ACTIVE, TransmissionEvent.HANDOFF): TransmissionState.ACTIVE,
        (TransmissionState.ACTIVE, TransmissionEvent.LOOP): TransmissionState.ACTIVE,
        (TransmissionState.ACTIVE, TransmissionEvent.AUTO_FINALIZE): TransmissionState.FINALIZED,
    }

    TERMINAL_STATES: set[TransmissionState] = {
        TransmissionState.FINALIZED,
        TransmissionState.ERROR,
    }

    @classmethod
    def next_state(
        cls, current: TransmissionState | None, event: TransmissionEvent
    ) -> TransmissionState | None:
        """Return the state the event leads to, or None when the event is not allowed."""
        return cls.TRANSITIONS.get((current, event))

    @classmethod
    def can_transition(cls, current: TransmissionState | None, event: TransmissionEvent) -> bool:
        return (current, event) in cls.TRANSITIONS

    @classmethod
    def is_terminal(cls, state: TransmissionState) -> bool:
        return state in cls.TERMINAL_STATES

    @classmethod
    def get_valid_events(cls, state: TransmissionState | None) -> set[TransmissionEvent]:
        """Get all events accepted in a given state.

        Args:
            state: Current transmission state, or None before the record exists

        Returns:
            Set of events with a defined transition
        """
        return {event for (source, event) in cls.TRANSITIONS if source == state}
