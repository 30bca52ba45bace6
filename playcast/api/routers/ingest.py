from fastapi import APIRouter, Depends

from playcast.api.dependency import CurrentUser
from playcast.api.routers.limits import get_limit_service
from playcast.api.utils import ApiOut
from playcast.domain.live.limits.limit_domain import LimitService
from playcast.domain.live.limits.limit_models import IngestStatus, IngestStopResponse

router = APIRouter(prefix="/ingest", tags=["Ingest"])


@router.get("/status")
async def get_ingest_status(
    user: CurrentUser,
    service: LimitService = Depends(get_limit_service),
) -> ApiOut[IngestStatus]:
    """Live-camera ingest stream of the caller; zeroed when the engine is down."""
    result = await service.get_ingest_status(user.user_id)
    return ApiOut[IngestStatus](results=result)


@router.post("/stop")
async def stop_ingest(
    user: CurrentUser,
    service: LimitService = Depends(get_limit_service),
) -> ApiOut[IngestStopResponse]:
    result = await service.stop_ingest(user.user_id)
    return ApiOut[IngestStopResponse](results=result)
