"""Transmission domain service - request handlers and reconciliation with Beanie ODM."""

from playcast.schemas import TransmissionState

from ._monitor import TransmissionMonitor, transmission_monitor
from ._transmissions import TransmissionOperations
from .transmission_models import (
    ReconcileOutcome,
    TransmissionListResponse,
    TransmissionResponse,
    TransmissionStartParams,
    TransmissionStartResponse,
    TransmissionStatusResponse,
)


class TransmissionService:
    """Facade over transmission operations and the reconciliation monitor."""

    def __init__(self, monitor: TransmissionMonitor | None = None):
        self.monitor = monitor or transmission_monitor
        self._transmissions = TransmissionOperations(monitor=self.monitor)

    # ==================== LIFECYCLE ====================

    async def start_transmission(
        self,
        params: TransmissionStartParams,
    ) -> TransmissionStartResponse:
        """Start a playlist transmission.

        Raises AppError on validation, conflict, not-found or engine failures.
        """
        return await self._transmissions.start_transmission(params=params)

    async def stop_transmission(
        self,
        owner_id: str,
        transmission_id: str | None = None,
    ) -> TransmissionResponse:
        """Stop the given (or most recent) active transmission.

        Raises AppError if there is nothing active to stop.
        """
        return await self._transmissions.stop_transmission(
            owner_id=owner_id, transmission_id=transmission_id
        )

    async def pause_transmission(
        self,
        owner_id: str,
        transmission_id: str | None = None,
    ) -> TransmissionResponse:
        return await self._transmissions.pause_transmission(
            owner_id=owner_id, transmission_id=transmission_id
        )

    async def resume_transmission(
        self,
        owner_id: str,
        transmission_id: str | None = None,
    ) -> TransmissionResponse:
        return await self._transmissions.resume_transmission(
            owner_id=owner_id, transmission_id=transmission_id
        )

    async def remove_transmission(self, owner_id: str, transmission_id: str) -> None:
        """Delete a transmission after best-effort teardown.

        Raises AppError if the transmission is not found.
        """
        await self._transmissions.remove_transmission(
            owner_id=owner_id, transmission_id=transmission_id
        )

    # ==================== QUERIES ====================

    async def list_transmissions(
        self,
        owner_id: str,
        status: TransmissionState | None = None,
    ) -> TransmissionListResponse:
        return await self._transmissions.list_transmissions(owner_id=owner_id, status=status)

    async def get_status(self, owner_id: str) -> TransmissionStatusResponse:
        return await self._transmissions.get_status(owner_id=owner_id)

    # ==================== RECONCILIATION ====================

    async def reconcile_once(self, transmission_id: str) -> ReconcileOutcome:
        """Run one reconciliation tick without the timer."""
        return await self.monitor.reconciler.reconcile_once(transmission_id)

    async def restore_monitors(self) -> int:
        return await self.monitor.restore()

    async def shutdown_monitors(self) -> None:
        await self.monitor.shutdown()
