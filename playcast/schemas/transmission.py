"""Transmission ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator

from playcast.utils.time_utils import parse_mongo_datetime

from .transmission_state import AttachmentState, TransmissionState


class TransmissionAttachment(BaseModel):
    """A platform attachment a transmission is pushed to."""

    attachment_id: str
    platform_code: str
    status: AttachmentState = AttachmentState.CONNECTING


class Transmission(Document):
    """Playlist-driven broadcast routed through the streaming engine."""

    transmission_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    owner_id: Indexed(str)  # type: ignore[valid-type]
    owner_login: str

    title: str
    description: str = ""

    # Streaming server the owner's descriptor is written to
    server_id: int | None = None

    # Engine identifiers
    stream_id: str  # unique per start attempt
    engine_session_id: str | None = None

    # Playlist routing
    playlist_id: str
    finalization_playlist_id: str | None = None
    loop_playlist: bool = False

    status: TransmissionState = TransmissionState.ACTIVE
    bitrate: int
    recording_enabled: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)
    attachments: list[TransmissionAttachment] = Field(default_factory=list)

    auto_finalized: bool = False
    error_reason: str | None = None

    # Timestamps
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    paused_at: datetime | None = None
    resumed_at: datetime | None = None
    ended_at: datetime | None = None

    @field_validator(
        "created_at",
        "updated_at",
        "started_at",
        "paused_at",
        "resumed_at",
        "ended_at",
        mode="before",
    )
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        """Parse MongoDB Extended JSON datetime format."""
        return parse_mongo_datetime(v)

    class Settings:
        name = "transmission"
        indexes = [
            [("owner_id", 1), ("status", 1)],
            [("owner_id", 1), ("created_at", -1)],
        ]
