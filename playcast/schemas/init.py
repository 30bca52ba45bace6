"""MongoDB connection and Beanie document registration."""

from beanie import init_beanie
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from .platform_attachment import PlatformAttachment
from .playlist import Playlist
from .relay_session import LiveRelaySession
from .streaming_account import StreamingAccount, StreamingServer
from .transmission import Transmission

DOCUMENT_MODELS = [
    LiveRelaySession,
    PlatformAttachment,
    Playlist,
    StreamingAccount,
    StreamingServer,
    Transmission,
]


def open_database(
    mongo_url: str, database_name: str
) -> tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    """Create a tz-aware Motor client; stored datetimes come back as UTC."""
    client = AsyncIOMotorClient(mongo_url, tz_aware=True)
    return client, client[database_name]


async def init_beanie_odm(database: AsyncIOMotorDatabase) -> None:
    """Register every document model on the database and build its indexes."""
    await init_beanie(
        database=database,  # type: ignore[arg-type]
        document_models=DOCUMENT_MODELS,
    )
    logger.info(f"Beanie initialized on {database.name} ({len(DOCUMENT_MODELS)} collections)")


__all__ = ["DOCUMENT_MODELS", "init_beanie_odm", "open_database"]
