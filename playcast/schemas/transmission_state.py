"""Status enums shared by transmission and relay records."""

from enum import Enum


class TransmissionState(str, Enum):
    """Transmission lifecycle states.

    State Transition Flow:

    (start) → ACTIVE ⇄ PAUSED
                 ↓        ↓
             FINALIZED  ERROR

    State Descriptions:
    - SCHEDULED: Created for a future start (reserved; playlist starts are immediate).
    - ACTIVE: Engine confirmed the stream. Set by start/resume and kept by the
      reconciliation loop while it loops or hands off to the finalization playlist.
    - PAUSED: Set by a pause request; the reconciliation loop leaves it alone.
    - FINALIZED: Stopped by the owner or by the reconciliation loop.
    - ERROR: Start could not be confirmed or the engine failed mid-transition.

    Terminal states (no further transitions): FINALIZED, ERROR
    """

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    PAUSED = "paused"
    FINALIZED = "finalized"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def terminal_states(cls) -> list["TransmissionState"]:
        return [TransmissionState.FINALIZED, TransmissionState.ERROR]


class RelayState(str, Enum):
    """Live relay session states.

    SCHEDULED sessions wait for an external scheduler; ACTIVE sessions have a
    verified relay process; FINALIZED and ERROR sessions can be restarted.
    """

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    FINALIZED = "finalized"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class AttachmentState(str, Enum):
    """Per-destination status of a platform attached to a transmission."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"

    def __str__(self) -> str:
        return self.value


__all__ = ["AttachmentState", "RelayState", "TransmissionState"]
