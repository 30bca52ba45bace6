from fastapi import APIRouter, Depends, Query

from playcast.api.dependency import CurrentUser
from playcast.api.utils import ApiOut
from playcast.domain.live.limits.limit_domain import LimitService
from playcast.domain.live.limits.limit_models import IngestConfigResponse

router = APIRouter(prefix="/limits", tags=["Limits"])

# Singleton instance
_limit_service = LimitService()


def get_limit_service() -> LimitService:
    """Get the singleton LimitService instance."""
    return _limit_service


@router.get("/ingest_config")
async def get_ingest_config(
    user: CurrentUser,
    service: LimitService = Depends(get_limit_service),
    bitrate: int | None = Query(None, gt=0, description="Requested bitrate in kbps"),
) -> ApiOut[IngestConfigResponse]:
    """Encoder settings for the caller, with plan limits and capacity warnings."""
    result = await service.get_ingest_config(user.user_id, requested_bitrate=bitrate)
    return ApiOut[IngestConfigResponse](results=result)
