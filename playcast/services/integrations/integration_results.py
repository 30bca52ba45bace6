"""Result types returned by external collaborators.

Collaborators report expected failures through these models instead of raising,
so callers decide explicitly whether a failure is fatal (start path) or only
logged (teardown path). Transport failures that leave the caller without any
answer are raised as the errors below.
"""

from pydantic import BaseModel, Field


class EngineUnavailableError(Exception):
    """The streaming engine could not be reached or returned an unusable answer."""


class RemoteExecutionError(Exception):
    """A remote command could not be executed (transport failure, timeout)."""


class EngineDestination(BaseModel):
    """A push target handed to the engine alongside a stream start."""

    platform_code: str
    server: str
    application: str
    stream_key: str


class EngineSessionSpec(BaseModel):
    stream_id: str
    owner_id: str
    owner_login: str
    descriptor_file: str
    bitrate: int
    recording_enabled: bool = False
    destinations: list[EngineDestination] = Field(default_factory=list)


class EngineStartResult(BaseModel):
    success: bool
    engine_session_id: str | None = None
    # False when the engine only accepted the request; liveness must be verified.
    confirmed: bool = False
    error: str | None = None


class EngineCallResult(BaseModel):
    success: bool
    error: str | None = None


class EngineLiveness(BaseModel):
    is_active: bool = False
    viewers: int = 0
    bitrate: int = 0
    uptime: str = "00:00:00"


class RemoteCommandResult(BaseModel):
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class DescriptorResult(BaseModel):
    success: bool
    descriptor_path: str | None = None
    error: str | None = None
