"""Limit evaluation and ingest configuration models."""

from pydantic import BaseModel, Field


class ServerLoad(BaseModel):
    """Load figures of the streaming server an owner is assigned to."""

    stream_slot_limit: int = 0
    active_streams: int = 0
    cpu_load: float = 0.0


class BitrateLimits(BaseModel):
    max: int
    requested: int
    allowed: int


class ViewerLimits(BaseModel):
    max: int


class StorageLimits(BaseModel):
    max: int
    used: int
    available: int
    percentage: int


class UserLimits(BaseModel):
    bitrate: BitrateLimits
    viewers: ViewerLimits
    storage: StorageLimits


class LimitEvaluation(BaseModel):
    allowed_bitrate: int
    warnings: list[str] = Field(default_factory=list)
    limits: UserLimits


class IngestEndpoints(BaseModel):
    """Where an owner's encoder pushes and where viewers pull."""

    rtmp_url: str
    stream_key: str
    hls_url: str
    hls_secure_url: str
    dash_url: str
    rtsp_url: str
    source_rtmp: str
    live_view_url: str
    recording_path: str


class IngestConfigResponse(BaseModel):
    owner_login: str
    server_id: int
    endpoints: IngestEndpoints
    max_bitrate: int
    max_viewers: int
    recording_enabled: bool
    limits: UserLimits
    warnings: list[str] = Field(default_factory=list)
    server_load: ServerLoad | None = None
    engine_reachable: bool = True


class IngestStatus(BaseModel):
    """Live-camera ingest stream of an owner (`<login>/<login>` on the engine).

    Counters are zero and `engine_reachable` is False when the engine could
    not be queried.
    """

    is_live: bool = False
    viewers: int = 0
    bitrate: int = 0
    uptime: str = "00:00:00"
    recording: bool = False
    engine_reachable: bool = True
    error: str | None = None


class IngestStopResponse(BaseModel):
    stopped: bool
    message: str
