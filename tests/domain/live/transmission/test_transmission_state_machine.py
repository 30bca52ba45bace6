"""Tests for the transmission state machine."""

import pytest

from playcast.domain.live.transmission.transmission_state_machine import (
    TransmissionEvent,
    TransmissionStateMachine,
)
from playcast.schemas import TransmissionState


class TestTransmissionStateMachine:
    @pytest.mark.parametrize(
        ("current", "event", "expected"),
        [
            (None, TransmissionEvent.START, TransmissionState.ACTIVE),
            (None, TransmissionEvent.START_UNCONFIRMED, TransmissionState.ERROR),
            (TransmissionState.ACTIVE, TransmissionEvent.STOP, TransmissionState.FINALIZED),
            (TransmissionState.ACTIVE, TransmissionEvent.PAUSE, TransmissionState.PAUSED),
            (TransmissionState.PAUSED, TransmissionEvent.RESUME, TransmissionState.ACTIVE),
            (TransmissionState.ACTIVE, TransmissionEvent.HANDOFF, TransmissionState.ACTIVE),
            (TransmissionState.ACTIVE, TransmissionEvent.LOOP, TransmissionState.ACTIVE),
            (TransmissionState.ACTIVE, TransmissionEvent.AUTO_FINALIZE, TransmissionState.FINALIZED),
        ],
    )
    def test_allowed_transitions(self, current, event, expected):
        assert TransmissionStateMachine.next_state(current, event) == expected
        assert TransmissionStateMachine.can_transition(current, event)

    @pytest.mark.parametrize(
        ("current", "event"),
        [
            (TransmissionState.FINALIZED, TransmissionEvent.STOP),
            (TransmissionState.PAUSED, TransmissionEvent.STOP),
            (TransmissionState.PAUSED, TransmissionEvent.PAUSE),
            (TransmissionState.ACTIVE, TransmissionEvent.RESUME),
            (TransmissionState.ERROR, TransmissionEvent.RESUME),
            (TransmissionState.PAUSED, TransmissionEvent.LOOP),
            (None, TransmissionEvent.STOP),
        ],
    )
    def test_rejected_transitions(self, current, event):
        assert TransmissionStateMachine.next_state(current, event) is None
        assert not TransmissionStateMachine.can_transition(current, event)

    def test_terminal_states_accept_no_events(self):
        for state in (TransmissionState.FINALIZED, TransmissionState.ERROR):
            assert TransmissionStateMachine.is_terminal(state)
            assert TransmissionStateMachine.get_valid_events(state) == set()

    def test_paused_only_resumes(self):
        assert TransmissionStateMachine.get_valid_events(TransmissionState.PAUSED) == {
            TransmissionEvent.RESUME,
        }

    def test_scheduled_accepts_no_events(self):
        assert TransmissionStateMachine.get_valid_events(TransmissionState.SCHEDULED) == set()
