from fastapi import APIRouter, Depends, Query

from playcast.api.dependency import CurrentUser
from playcast.api.schemas.transmission import (
    ListTransmissionsOut,
    RemovedOut,
    StartTransmissionIn,
    StartTransmissionOut,
    TransmissionOut,
    TransmissionRefIn,
    TransmissionStatusOut,
)
from playcast.api.utils import ApiOut
from playcast.domain.live.transmission.transmission_domain import TransmissionService
from playcast.domain.live.transmission.transmission_models import (
    TransmissionResponse,
    TransmissionStartParams,
)
from playcast.schemas import TransmissionState

router = APIRouter(prefix="/transmission", tags=["Transmission"])

# Singleton instance
_transmission_service = TransmissionService()


def get_transmission_service() -> TransmissionService:
    """Get the singleton TransmissionService instance."""
    return _transmission_service


def _out(transmission: TransmissionResponse) -> TransmissionOut:
    return TransmissionOut(**transmission.model_dump())


@router.post("/start")
async def start_transmission(
    body: StartTransmissionIn,
    user: CurrentUser,
    service: TransmissionService = Depends(get_transmission_service),
) -> ApiOut[StartTransmissionOut]:
    """Start broadcasting a playlist to the selected platforms."""
    params = TransmissionStartParams(
        owner_id=user.user_id,
        owner_login=user.login,
        title=body.title,
        description=body.description,
        playlist_id=body.playlist_id,
        finalization_playlist_id=body.finalization_playlist_id,
        loop_playlist=body.loop_playlist,
        attachment_ids=body.attachment_ids,
        bitrate_override=body.bitrate,
        recording_enabled=body.recording_enabled,
        settings=body.settings,
    )
    result = await service.start_transmission(params)

    return ApiOut[StartTransmissionOut](
        results=StartTransmissionOut(
            transmission=_out(result.transmission),
            warnings=result.warnings,
            playback_url=result.playback_url,
        )
    )


@router.post("/stop")
async def stop_transmission(
    body: TransmissionRefIn,
    user: CurrentUser,
    service: TransmissionService = Depends(get_transmission_service),
) -> ApiOut[TransmissionOut]:
    result = await service.stop_transmission(user.user_id, body.transmission_id)
    return ApiOut[TransmissionOut](results=_out(result))


@router.post("/pause")
async def pause_transmission(
    body: TransmissionRefIn,
    user: CurrentUser,
    service: TransmissionService = Depends(get_transmission_service),
) -> ApiOut[TransmissionOut]:
    result = await service.pause_transmission(user.user_id, body.transmission_id)
    return ApiOut[TransmissionOut](results=_out(result))


@router.post("/resume")
async def resume_transmission(
    body: TransmissionRefIn,
    user: CurrentUser,
    service: TransmissionService = Depends(get_transmission_service),
) -> ApiOut[TransmissionOut]:
    result = await service.resume_transmission(user.user_id, body.transmission_id)
    return ApiOut[TransmissionOut](results=_out(result))


@router.delete("/{transmission_id}")
async def remove_transmission(
    transmission_id: str,
    user: CurrentUser,
    service: TransmissionService = Depends(get_transmission_service),
) -> ApiOut[RemovedOut]:
    """Delete a transmission, stopping it first when it is still running."""
    await service.remove_transmission(user.user_id, transmission_id)
    return ApiOut[RemovedOut](results=RemovedOut(removed=transmission_id))


@router.get("/list")
async def list_transmissions(
    user: CurrentUser,
    service: TransmissionService = Depends(get_transmission_service),
    status: TransmissionState | None = Query(None, description="Only transmissions in this state"),
) -> ApiOut[ListTransmissionsOut]:
    result = await service.list_transmissions(user.user_id, status=status)
    return ApiOut[ListTransmissionsOut](
        results=ListTransmissionsOut(transmissions=[_out(t) for t in result.transmissions])
    )


@router.get("/status")
async def get_transmission_status(
    user: CurrentUser,
    service: TransmissionService = Depends(get_transmission_service),
) -> ApiOut[TransmissionStatusOut]:
    """Current transmission of the caller with live engine stats."""
    result = await service.get_status(user.user_id)
    return ApiOut[TransmissionStatusOut](
        results=TransmissionStatusOut(
            is_live=result.is_live,
            transmission=_out(result.transmission) if result.transmission else None,
            stats=result.stats,
        )
    )
