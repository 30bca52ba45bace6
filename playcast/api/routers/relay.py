from fastapi import APIRouter, Depends

from playcast.api.dependency import CurrentUser
from playcast.api.schemas.relay import (
    ListRelaysOut,
    RelayOut,
    RelayRefIn,
    StartRelayIn,
    StartRelayOut,
)
from playcast.api.schemas.transmission import RemovedOut
from playcast.api.utils import ApiOut
from playcast.domain.live.relay.relay_domain import RelayService
from playcast.domain.live.relay.relay_models import RelayStartParams

router = APIRouter(prefix="/relay", tags=["Relay"])

# Singleton instance
_relay_service = RelayService()


def get_relay_service() -> RelayService:
    """Get the singleton RelayService instance."""
    return _relay_service


@router.post("/start")
async def start_relay(
    body: StartRelayIn,
    user: CurrentUser,
    service: RelayService = Depends(get_relay_service),
) -> ApiOut[StartRelayOut]:
    """Push the caller's live feed to one destination, now or on a schedule."""
    params = RelayStartParams(
        owner_id=user.user_id,
        owner_login=user.login,
        platform=body.platform,
        destination_url=body.destination_url,
        stream_key=body.stream_key,
        immediate=body.immediate,
        scheduled_start=body.scheduled_start,
        scheduled_end=body.scheduled_end,
    )
    result = await service.start_relay(params)

    return ApiOut[StartRelayOut](
        results=StartRelayOut(
            relay=RelayOut(**result.relay.model_dump()),
            source_rtmp=result.source_rtmp,
            view_url=result.view_url,
        )
    )


@router.post("/stop")
async def stop_relay(
    body: RelayRefIn,
    user: CurrentUser,
    service: RelayService = Depends(get_relay_service),
) -> ApiOut[RelayOut]:
    result = await service.stop_relay(user.user_id, body.relay_id)
    return ApiOut[RelayOut](results=RelayOut(**result.model_dump()))


@router.post("/restart")
async def restart_relay(
    body: RelayRefIn,
    user: CurrentUser,
    service: RelayService = Depends(get_relay_service),
) -> ApiOut[RelayOut]:
    result = await service.restart_relay(user.user_id, body.relay_id)
    return ApiOut[RelayOut](results=RelayOut(**result.model_dump()))


@router.delete("/{relay_id}")
async def remove_relay(
    relay_id: str,
    user: CurrentUser,
    service: RelayService = Depends(get_relay_service),
) -> ApiOut[RemovedOut]:
    await service.remove_relay(user.user_id, relay_id)
    return ApiOut[RemovedOut](results=RemovedOut(removed=relay_id))


@router.get("/list")
async def list_relays(
    user: CurrentUser,
    service: RelayService = Depends(get_relay_service),
) -> ApiOut[ListRelaysOut]:
    result = await service.list_relays(user.user_id)
    return ApiOut[ListRelaysOut](
        results=ListRelaysOut(relays=[RelayOut(**r.model_dump()) for r in result.relays])
    )
