"""Streaming account and server ODM schemas (owner plan and execution target)."""

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import field_validator

from playcast.utils.time_utils import parse_mongo_datetime

DEFAULT_PLAN_BITRATE = 2500
DEFAULT_PLAN_VIEWERS = 100
DEFAULT_STORAGE_TOTAL_MB = 1000


class StreamingAccount(Document):
    """An owner's streaming plan and assigned server."""

    owner_id: Indexed(str, unique=True)  # type: ignore[valid-type]
    owner_login: str
    server_id: int | None = None

    # Plan limits
    bitrate: int = DEFAULT_PLAN_BITRATE  # kbps
    max_viewers: int = DEFAULT_PLAN_VIEWERS
    storage_total_mb: int = DEFAULT_STORAGE_TOTAL_MB
    storage_used_mb: int = 0
    recording_enabled: bool = False

    active: bool = True

    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_datetime(cls, v: Any) -> Any:
        return parse_mongo_datetime(v)

    class Settings:
        name = "streaming_account"


class StreamingServer(Document):
    """A streaming engine host that relay processes and descriptors live on."""

    server_id: Indexed(int, unique=True)  # type: ignore[valid-type]
    name: str
    host: str
    ssh_port: int = 22

    # Load figures reported by the host
    stream_slot_limit: int = 0
    active_streams: int = 0
    cpu_load: float = 0.0

    online: bool = True

    class Settings:
        name = "streaming_server"
