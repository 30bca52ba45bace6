"""Playlist ODM schema."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator

from playcast.utils.time_utils import parse_mongo_datetime


class PlaylistVideo(BaseModel):
    path: str  # relative to the owner's content directory
    title: str | None = None
    duration_seconds: int | None = None


class Playlist(Document):
    playlist_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    owner_id: Indexed(str)  # type: ignore[valid-type]
    name: str
    videos: list[PlaylistVideo] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    @property
    def total_videos(self) -> int:
        return len(self.videos)

    class Settings:
        name = "playlist"
