"""Live relay domain models."""

from datetime import datetime

from pydantic import BaseModel

from playcast.schemas import RelayState


class RelayResponse(BaseModel):
    relay_id: str
    owner_id: str
    owner_login: str
    platform: str
    server_id: int

    destination_url: str
    destination_server: str
    destination_application: str
    stream_key: str

    immediate: bool
    scheduled_start: datetime
    scheduled_end: datetime

    status: RelayState
    error_reason: str | None = None

    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None


class RelayStartParams(BaseModel):
    """Parameters for starting (or scheduling) a live relay."""

    owner_id: str
    owner_login: str
    platform: str
    destination_url: str
    stream_key: str
    immediate: bool = True
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None


class RelayStartResponse(BaseModel):
    relay: RelayResponse
    source_rtmp: str
    view_url: str


class RelayListResponse(BaseModel):
    relays: list[RelayResponse]
