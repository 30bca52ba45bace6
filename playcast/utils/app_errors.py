"""Application error type shared by domain services and the HTTP layer."""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503


class AppErrorCode(str, Enum):
    # Validation
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_SCHEDULE = "E_INVALID_SCHEDULE"
    E_PLAYLIST_EMPTY = "E_PLAYLIST_EMPTY"
    E_RESTART_UNSUPPORTED = "E_RESTART_UNSUPPORTED"

    # Conflict
    E_TRANSMISSION_ALREADY_ACTIVE = "E_TRANSMISSION_ALREADY_ACTIVE"
    E_RELAY_ALREADY_ACTIVE = "E_RELAY_ALREADY_ACTIVE"
    E_INVALID_STATE_TRANSITION = "E_INVALID_STATE_TRANSITION"

    # Not found
    E_TRANSMISSION_NOT_FOUND = "E_TRANSMISSION_NOT_FOUND"
    E_RELAY_NOT_FOUND = "E_RELAY_NOT_FOUND"
    E_PLAYLIST_NOT_FOUND = "E_PLAYLIST_NOT_FOUND"
    E_ACCOUNT_NOT_FOUND = "E_ACCOUNT_NOT_FOUND"

    # External dependency
    E_ENGINE_UNAVAILABLE = "E_ENGINE_UNAVAILABLE"
    E_ENGINE_START_FAILED = "E_ENGINE_START_FAILED"
    E_ENGINE_STOP_FAILED = "E_ENGINE_STOP_FAILED"
    E_START_UNCONFIRMED = "E_START_UNCONFIRMED"
    E_REMOTE_EXECUTION_FAILED = "E_REMOTE_EXECUTION_FAILED"

    # Auth / fallback
    E_BAD_TOKEN = "E_BAD_TOKEN"
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Error surfaced to API callers with a stable code and HTTP status.

    The caller location is captured at construction time so the HTTP error
    handler can log where the error was raised, not where it was caught.
    """

    def __init__(
        self,
        errcode: AppErrorCode | str,
        errmesg: str = "",
        status_code: int = HttpStatusCode.BAD_REQUEST,
    ):
        super().__init__(errmesg)
        self.errcode = errcode.value if isinstance(errcode, AppErrorCode) else str(errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.erresid = uuid4().hex[:10]
        self.caller_info = self._capture_caller()

    @staticmethod
    def _capture_caller() -> str:
        frame = inspect.currentframe()
        try:
            # Skip _capture_caller and __init__
            caller = frame.f_back.f_back if frame and frame.f_back else None
            if caller is None:
                return "unknown"
            module_name = caller.f_globals.get("__name__", caller.f_code.co_filename)
            return f"{module_name}:{caller.f_code.co_name}:{caller.f_lineno}"
        finally:
            del frame

    def __str__(self) -> str:
        return f"{self.errcode}: {self.errmesg}"

    def __repr__(self) -> str:
        return f"AppError(errcode={self.errcode!r}, errmesg={self.errmesg!r}, status_code={self.status_code})"
