from typing import Annotated

from fastapi import Depends, Header
from loguru import logger
from pydantic import BaseModel

from playcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


class User(BaseModel):
    user_id: str
    login: str


async def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_login: Annotated[str | None, Header()] = None,
) -> User:
    # Identity headers are set by the upstream auth gateway after it validated the token.
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AppError(
            errcode=AppErrorCode.E_BAD_TOKEN,
            errmesg="Missing caller identity",
            status_code=HttpStatusCode.UNAUTHORIZED,
        )

    login = (x_user_login or "").strip() or f"user_{user_id}"
    logger.debug("Authenticated user_id: {}", user_id)
    return User(user_id=user_id, login=login)


CurrentUser = Annotated[User, Depends(get_current_user)]
