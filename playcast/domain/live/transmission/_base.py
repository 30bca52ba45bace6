"""Base service for transmission operations."""

from typing import Any

from beanie.odm.operators.update.general import Set
from loguru import logger
from pymongo import DESCENDING

from playcast.app_config import get_app_environ_config
from playcast.schemas import (
    AttachmentState,
    Transmission,
    TransmissionAttachment,
    TransmissionState,
)
from playcast.services.integrations.playlist_descriptor_service import (
    PlaylistDescriptorService,
    playlist_descriptor_service,
)
from playcast.services.integrations.streaming_engine_service import (
    StreamingEngineService,
    streaming_engine_service,
)
from playcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode
from playcast.utils.time_utils import utc_now

from .transmission_models import TransmissionResponse
from .transmission_state_machine import TransmissionEvent, TransmissionStateMachine

_RESUMING_EVENTS = {TransmissionEvent.RESUME}
_ENDING_STATES = {TransmissionState.FINALIZED, TransmissionState.ERROR}


class BaseService:
    """Base service with shared transmission operation methods."""

    def __init__(
        self,
        engine: StreamingEngineService | None = None,
        descriptors: PlaylistDescriptorService | None = None,
    ):
        self._cfg = get_app_environ_config()
        self.engine = engine or streaming_engine_service
        self.descriptors = descriptors or playlist_descriptor_service

    async def _get_transmission_by_id(self, transmission_id: str) -> Transmission | None:
        return await Transmission.find_one(Transmission.transmission_id == transmission_id)

    async def _get_owned_transmission(self, owner_id: str, transmission_id: str) -> Transmission:
        """
        Retrieve a transmission owned by the caller.

        Raises:
            AppError: If the transmission does not exist or belongs to someone else
        """
        transmission = await Transmission.find_one(
            Transmission.transmission_id == transmission_id,
            Transmission.owner_id == owner_id,
        )
        if not transmission:
            raise AppError(
                errcode=AppErrorCode.E_TRANSMISSION_NOT_FOUND,
                errmesg=f"Transmission not found: {transmission_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        return transmission

    async def _get_latest_in_state(
        self, owner_id: str, status: TransmissionState
    ) -> Transmission | None:
        """Most recently created transmission of the owner in the given state."""
        return await (
            Transmission.find(
                Transmission.owner_id == owner_id,
                Transmission.status == status,
            )
            .sort([("created_at", DESCENDING)])
            .first_or_none()
        )

    async def _get_active_transmission(self, owner_id: str) -> Transmission | None:
        return await self._get_latest_in_state(owner_id, TransmissionState.ACTIVE)

    async def _resolve_for_event(
        self,
        owner_id: str,
        transmission_id: str | None,
        status: TransmissionState,
    ) -> Transmission:
        """Resolve by id, or fall back to the owner's latest transmission in `status`."""
        if transmission_id:
            return await self._get_owned_transmission(owner_id, transmission_id)

        transmission = await self._get_latest_in_state(owner_id, status)
        if not transmission:
            raise AppError(
                errcode=AppErrorCode.E_TRANSMISSION_NOT_FOUND,
                errmesg=f"No {status} transmission found for owner {owner_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        return transmission

    def _require_event(self, transmission: Transmission, event: TransmissionEvent) -> TransmissionState:
        new_state = TransmissionStateMachine.next_state(transmission.status, event)
        if new_state is None:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_STATE_TRANSITION,
                errmesg=(
                    f"Cannot {event} transmission {transmission.transmission_id} "
                    f"in state {transmission.status}"
                ),
                status_code=HttpStatusCode.CONFLICT,
            )
        return new_state

    @staticmethod
    def _initial_state(event: TransmissionEvent) -> TransmissionState:
        """State a brand new record is created in for a creating event."""
        new_state = TransmissionStateMachine.next_state(None, event)
        if new_state is None:
            raise ValueError(f"Event {event} cannot create a transmission")
        return new_state

    @staticmethod
    def _disconnected(attachments: list[TransmissionAttachment]) -> list[dict[str, Any]]:
        """Attachment payload with every destination marked disconnected."""
        return [
            attachment.model_copy(update={"status": AttachmentState.DISCONNECTED}).model_dump(
                mode="json"
            )
            for attachment in attachments
        ]

    async def apply_event(
        self,
        transmission: Transmission,
        event: TransmissionEvent,
        extra: dict[Any, Any] | None = None,
    ) -> Transmission:
        """
        Apply a lifecycle event with validation and timestamp updates.

        All status writes go through here. Lifecycle timestamps are stamped
        according to the event and the resulting state, and the changed fields
        are persisted as a partial update.

        Args:
            transmission: Transmission document to update
            event: Lifecycle event being applied
            extra: Additional field updates persisted in the same write

        Returns:
            Updated transmission document

        Raises:
            AppError: If the event is not allowed in the current state, or the
                stored status changed since the document was read
        """
        previous = transmission.status
        new_state = self._require_event(transmission, event)
        now = utc_now()

        updates: dict[Any, Any] = {
            Transmission.status: new_state,
            Transmission.updated_at: now,
        }
        if event in _RESUMING_EVENTS:
            updates[Transmission.resumed_at] = now
        elif new_state == TransmissionState.PAUSED:
            updates[Transmission.paused_at] = now
        elif new_state in _ENDING_STATES:
            updates[Transmission.ended_at] = now
        if extra:
            updates.update(extra)

        # Conditional on the status the transition was validated against
        result = await Transmission.find_one(
            Transmission.transmission_id == transmission.transmission_id,
            Transmission.status == previous,
        ).update(Set(updates))  # type: ignore[arg-type]
        if not result or result.matched_count == 0:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_STATE_TRANSITION,
                errmesg=(
                    f"Transmission {transmission.transmission_id} left state {previous} "
                    f"before {event} was applied"
                ),
                status_code=HttpStatusCode.CONFLICT,
            )
        await transmission.sync()

        logger.info(
            f"Transmission {transmission.transmission_id} {previous} -[{event}]-> {new_state}"
        )
        return transmission

    async def _stop_engine_best_effort(self, transmission: Transmission) -> bool:
        """Stop the engine stream; failures are logged, never raised."""
        if not transmission.engine_session_id:
            return True
        try:
            result = await self.engine.stop(transmission.engine_session_id)
        except Exception as e:
            logger.exception(
                f"Engine stop raised for transmission {transmission.transmission_id}: {e}"
            )
            return False
        if not result.success:
            logger.warning(
                f"Engine stop failed for transmission {transmission.transmission_id}: {result.error}"
            )
        return result.success

    @staticmethod
    def to_response(transmission: Transmission) -> TransmissionResponse:
        return TransmissionResponse(**transmission.model_dump(exclude={"id", "revision_id"}))
