from datetime import datetime

from pydantic import BaseModel, Field, field_serializer

from playcast.domain.live.relay.relay_models import RelayResponse

from .serializers import serialize_optional_utc_datetime


class StartRelayIn(BaseModel):
    platform: str = Field(description="Destination platform code (youtube, facebook, tiktok, ...)")
    destination_url: str = Field(description="Destination RTMP url, e.g. rtmp://a.rtmp.youtube.com/live2")
    stream_key: str = Field(description="Destination stream key")
    immediate: bool = Field(default=True, description="Start now instead of scheduling")
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None


class RelayRefIn(BaseModel):
    relay_id: str


class RelayOut(RelayResponse):
    @field_serializer(
        "scheduled_start", "scheduled_end", "created_at", "updated_at", "started_at", "ended_at"
    )
    @classmethod
    def serialize_datetime(cls, v: datetime | None) -> str | None:
        return serialize_optional_utc_datetime(v)


class StartRelayOut(BaseModel):
    relay: RelayOut
    source_rtmp: str
    view_url: str


class ListRelaysOut(BaseModel):
    relays: list[RelayOut]
