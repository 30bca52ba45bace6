from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_serializer

from playcast.domain.live.transmission.transmission_models import (
    LiveStats,
    TransmissionResponse,
)

from .serializers import serialize_optional_utc_datetime


class StartTransmissionIn(BaseModel):
    title: str = Field(description="Title shown on destination platforms")
    description: str = Field(default="", description="Description of the transmission")
    playlist_id: str = Field(description="Playlist to broadcast")
    finalization_playlist_id: str | None = Field(
        default=None, description="Playlist played once after the main playlist ends"
    )
    loop_playlist: bool = Field(default=False, description="Restart the playlist when it ends")
    attachment_ids: list[str] = Field(
        default_factory=list, description="Saved platform attachments to push to"
    )
    bitrate: int | None = Field(
        default=None, gt=0, description="Requested bitrate in kbps, capped at the plan limit"
    )
    recording_enabled: bool | None = Field(
        default=None, description="Override the plan's recording setting"
    )
    settings: dict[str, Any] = Field(default_factory=dict)


class TransmissionRefIn(BaseModel):
    transmission_id: str | None = Field(
        default=None,
        description="Transmission to act on; defaults to the caller's most recent one",
    )


class TransmissionOut(TransmissionResponse):
    @field_serializer(
        "created_at", "updated_at", "started_at", "paused_at", "resumed_at", "ended_at"
    )
    @classmethod
    def serialize_datetime(cls, v: datetime | None) -> str | None:
        return serialize_optional_utc_datetime(v)


class StartTransmissionOut(BaseModel):
    transmission: TransmissionOut
    warnings: list[str] = Field(default_factory=list)
    playback_url: str


class ListTransmissionsOut(BaseModel):
    transmissions: list[TransmissionOut]


class TransmissionStatusOut(BaseModel):
    is_live: bool
    transmission: TransmissionOut | None = None
    stats: LiveStats | None = None


class RemovedOut(BaseModel):
    removed: str
