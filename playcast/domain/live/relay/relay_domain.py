"""Relay domain service - direct pushes of an owner's live feed."""

from ._relays import RelayOperations
from .relay_models import (
    RelayListResponse,
    RelayResponse,
    RelayStartParams,
    RelayStartResponse,
)


class RelayService:
    """Facade over live relay operations."""

    def __init__(self):
        self._relays = RelayOperations()

    async def start_relay(self, params: RelayStartParams) -> RelayStartResponse:
        """Start a relay now or persist it as scheduled.

        Raises AppError on validation, conflict or remote execution failures.
        """
        return await self._relays.start_relay(params=params)

    async def stop_relay(self, owner_id: str, relay_id: str) -> RelayResponse:
        return await self._relays.stop_relay(owner_id=owner_id, relay_id=relay_id)

    async def restart_relay(self, owner_id: str, relay_id: str) -> RelayResponse:
        """Restart an engine-pushed relay.

        Raises AppError for platforms pushed by a local relay process.
        """
        return await self._relays.restart_relay(owner_id=owner_id, relay_id=relay_id)

    async def remove_relay(self, owner_id: str, relay_id: str) -> None:
        await self._relays.remove_relay(owner_id=owner_id, relay_id=relay_id)

    async def list_relays(self, owner_id: str) -> RelayListResponse:
        return await self._relays.list_relays(owner_id=owner_id)
