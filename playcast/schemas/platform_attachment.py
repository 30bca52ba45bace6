"""Platform attachment ODM schema (saved destination credentials)."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator

from playcast.utils.time_utils import parse_mongo_datetime


class PlatformAttachment(Document):
    """Destination credentials a user saved for one platform.

    Managed by a separate CRUD service; transmissions only read it.
    """

    attachment_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    owner_id: Indexed(str)  # type: ignore[valid-type]

    platform_code: str
    platform_name: str = ""
    rtmp_url: str
    stream_key: str
    default_title: str | None = None
    active: bool = True

    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    class Settings:
        name = "platform_attachment"
