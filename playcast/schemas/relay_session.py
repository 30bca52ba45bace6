"""Live relay session ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator

from playcast.utils.time_utils import parse_mongo_datetime

from .transmission_state import RelayState


class LiveRelaySession(Document):
    """Direct push of the owner's raw live feed to a single external destination."""

    relay_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    owner_id: Indexed(str)  # type: ignore[valid-type]
    owner_login: str

    # Destination type (facebook, youtube, tiktok, ...)
    platform: str
    server_id: int

    # Destination endpoint
    destination_url: str
    destination_server: str
    destination_application: str
    stream_key: str

    # Scheduling window
    immediate: bool = True
    scheduled_start: datetime
    scheduled_end: datetime

    status: RelayState = RelayState.SCHEDULED
    error_reason: str | None = None

    # Timestamps
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @field_validator(
        "scheduled_start",
        "scheduled_end",
        "created_at",
        "updated_at",
        "started_at",
        "ended_at",
        mode="before",
    )
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    class Settings:
        name = "relay_session"
        indexes = [
            [("owner_id", 1), ("status", 1)],
        ]
