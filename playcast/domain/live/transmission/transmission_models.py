"""Transmission domain models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from playcast.schemas import TransmissionAttachment, TransmissionState

from ..limits.limit_models import IngestStatus


class TransmissionResponse(BaseModel):
    """Transmission response model."""

    transmission_id: str
    owner_id: str
    owner_login: str

    title: str
    description: str = ""
    server_id: int | None = None

    stream_id: str
    engine_session_id: str | None = None

    playlist_id: str
    finalization_playlist_id: str | None = None
    loop_playlist: bool = False

    status: TransmissionState
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


class TransmissionStartParams(BaseModel):
    """Parameters for starting a playlist transmission."""

    owner_id: str
    owner_login: str
    title: str
    description: str = ""
    playlist_id: str
    finalization_playlist_id: str | None = None
    loop_playlist: bool = False
    attachment_ids: list[str] = Field(default_factory=list)
    bitrate_override: int | None = None
    recording_enabled: bool | None = None
    settings: dict[str, Any] = Field(default_factory=dict)


class TransmissionStartResponse(BaseModel):
    transmission: TransmissionResponse
    warnings: list[str] = Field(default_factory=list)
    descriptor_path: str | None = None
    playback_url: str


class TransmissionListResponse(BaseModel):
    transmissions: list[TransmissionResponse]


class LiveStats(BaseModel):
    viewers: int = 0
    bitrate: int = 0
    uptime: str = "00:00:00"
    is_active: bool = False


class StreamType(str, Enum):
    PLAYLIST = "playlist"
    INGEST = "ingest"


class TransmissionStatusResponse(BaseModel):
    """Current transmission, plus the owner's live-camera ingest when an account exists.

    `is_live` is True when either the transmission is active or the ingest
    stream is live; `stream_type` names which one, the transmission winning.
    """

    is_live: bool
    stream_type: StreamType | None = None
    transmission: TransmissionResponse | None = None
    stats: LiveStats | None = None
    ingest: IngestStatus | None = None


class ReconcileOutcome(str, Enum):
    """What one reconciliation tick did."""

    EXITED = "exited"  # record missing or no longer active; the loop ends
    SKIPPED = "skipped"  # liveness query failed; retried on the next tick
    LIVE = "live"
    HANDED_OFF = "handed_off"
    LOOPED = "looped"
    FINALIZED = "finalized"

    def __str__(self) -> str:
        return self.value

    @property
    def keeps_running(self) -> bool:
        return self in {
            ReconcileOutcome.SKIPPED,
            ReconcileOutcome.LIVE,
            ReconcileOutcome.HANDED_OFF,
            ReconcileOutcome.LOOPED,
        }
