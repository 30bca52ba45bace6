"""Beanie ODM schemas for MongoDB collections."""

from .init import DOCUMENT_MODELS, init_beanie_odm, open_database
from .platform_attachment import PlatformAttachment
from .playlist import Playlist, PlaylistVideo
from .relay_session import LiveRelaySession
from .streaming_account import StreamingAccount, StreamingServer
from .transmission import Transmission, TransmissionAttachment
from .transmission_state import AttachmentState, RelayState, TransmissionState

__all__ = [
    "DOCUMENT_MODELS",
    "AttachmentState",
    "LiveRelaySession",
    "PlatformAttachment",
    "Playlist",
    "PlaylistVideo",
    "RelayState",
    "StreamingAccount",
    "StreamingServer",
    "Transmission",
    "TransmissionAttachment",
    "TransmissionState",
    "init_beanie_odm",
    "open_database",
]
