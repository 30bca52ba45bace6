from fastapi import APIRouter

from playcast.api.utils import ApiSuccess

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=ApiSuccess)
async def health():
    return ApiSuccess(results="OK")
