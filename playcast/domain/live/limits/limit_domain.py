"""Limit service - plan limits, ingest configuration and the live-camera ingest stream."""

from loguru import logger

from playcast.app_config import get_app_environ_config
from playcast.schemas import StreamingAccount, StreamingServer
from playcast.services.integrations.integration_results import EngineUnavailableError
from playcast.services.integrations.streaming_engine_service import (
    StreamingEngineService,
    build_engine_session_id,
    streaming_engine_service,
)
from playcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .limit_evaluator import evaluate
from .limit_models import (
    IngestConfigResponse,
    IngestEndpoints,
    IngestStatus,
    IngestStopResponse,
    ServerLoad,
)

WARN_ENGINE_DEGRADED = "Streaming engine API unavailable - running in degraded mode."
WARN_ENGINE_STATS = "Streams keep working, but live statistics may be unavailable."
INGEST_ENGINE_UNAVAILABLE = "Streaming engine API unavailable"


class LimitService:
    def __init__(self, engine: StreamingEngineService | None = None):
        self._cfg = get_app_environ_config()
        self.engine = engine or streaming_engine_service

    async def find_account(self, owner_id: str) -> StreamingAccount | None:
        return await StreamingAccount.find_one(
            StreamingAccount.owner_id == owner_id,
            StreamingAccount.active == True,  # noqa: E712
        )

    async def get_account(self, owner_id: str) -> StreamingAccount:
        """Return the owner's active streaming account.

        Raises AppError if the owner has no active account.
        """
        account = await self.find_account(owner_id)
        if not account:
            raise AppError(
                errcode=AppErrorCode.E_ACCOUNT_NOT_FOUND,
                errmesg=f"Streaming account not found for owner {owner_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        return account

    def resolve_server_id(self, account: StreamingAccount) -> int:
        return account.server_id or self._cfg.DEFAULT_SERVER_ID

    async def get_server_load(self, server_id: int) -> ServerLoad | None:
        server = await StreamingServer.find_one(StreamingServer.server_id == server_id)
        if not server:
            return None
        return ServerLoad(
            stream_slot_limit=server.stream_slot_limit,
            active_streams=server.active_streams,
            cpu_load=server.cpu_load,
        )

    def build_endpoints(self, owner_login: str) -> IngestEndpoints:
        host = self._cfg.ENGINE_PUBLIC_HOST
        live = f"{owner_login}_live"
        return IngestEndpoints(
            rtmp_url=f"rtmp://{host}:1935/{owner_login}",
            stream_key=live,
            hls_url=f"http://{host}:1935/{owner_login}/{live}/playlist.m3u8",
            hls_secure_url=f"https://{host}:443/{owner_login}/{live}/playlist.m3u8",
            dash_url=f"http://{host}:1935/{owner_login}/{live}/manifest.mpd",
            rtsp_url=f"rtsp://{host}:554/{owner_login}/{live}",
            source_rtmp=f"rtmp://{host}:1935/{owner_login}/{owner_login}",
            live_view_url=f"http://{host}:1935/{owner_login}/{owner_login}/playlist.m3u8",
            recording_path=f"{self._cfg.ENGINE_CONTENT_DIR}/{owner_login}/recordings/",
        )

    async def get_ingest_config(
        self,
        owner_id: str,
        requested_bitrate: int | None = None,
    ) -> IngestConfigResponse:
        """Return ingest endpoints, evaluated limits and warnings for an owner.

        Raises AppError if the owner has no active account.
        """
        account = await self.get_account(owner_id)
        server_id = self.resolve_server_id(account)
        server_load = await self.get_server_load(server_id)

        evaluation = evaluate(
            plan_bitrate=account.bitrate,
            plan_max_viewers=account.max_viewers,
            storage_used=account.storage_used_mb,
            storage_total=account.storage_total_mb,
            requested_bitrate=requested_bitrate,
            server_load=server_load,
        )

        warnings = list(evaluation.warnings)
        engine_reachable = await self.engine.test_connection()
        if not engine_reachable:
            logger.warning(f"Engine probe failed while building ingest config for {owner_id}")
            warnings.extend([WARN_ENGINE_DEGRADED, WARN_ENGINE_STATS])

        return IngestConfigResponse(
            owner_login=account.owner_login,
            server_id=server_id,
            endpoints=self.build_endpoints(account.owner_login),
            max_bitrate=evaluation.allowed_bitrate,
            max_viewers=evaluation.limits.viewers.max,
            recording_enabled=account.recording_enabled,
            limits=evaluation.limits,
            warnings=warnings,
            server_load=server_load,
            engine_reachable=engine_reachable,
        )

    # ==================== LIVE INGEST ====================

    @staticmethod
    def ingest_session_id(owner_login: str) -> str:
        """Engine id of the stream an owner's encoder publishes."""
        return build_engine_session_id(owner_login, owner_login)

    async def query_ingest(self, account: StreamingAccount) -> IngestStatus:
        """Liveness of the owner's ingest stream; never raises on engine failures."""
        session_id = self.ingest_session_id(account.owner_login)
        try:
            liveness = await self.engine.query_liveness(session_id)
        except EngineUnavailableError as e:
            logger.warning(f"Ingest status unavailable for {session_id}: {e}")
            return IngestStatus(engine_reachable=False, error=INGEST_ENGINE_UNAVAILABLE)

        return IngestStatus(
            is_live=liveness.is_active,
            viewers=liveness.viewers,
            bitrate=liveness.bitrate,
            uptime=liveness.uptime,
            recording=liveness.is_active and account.recording_enabled,
        )

    async def get_ingest_status(self, owner_id: str) -> IngestStatus:
        """Raises AppError if the owner has no active account."""
        account = await self.get_account(owner_id)
        return await self.query_ingest(account)

    async def stop_ingest(self, owner_id: str) -> IngestStopResponse:
        """Stop the owner's ingest stream on the engine.

        A stream that is already gone counts as stopped.

        Raises:
            AppError: If the owner has no active account or the engine
                refuses the stop
        """
        account = await self.get_account(owner_id)
        session_id = self.ingest_session_id(account.owner_login)

        result = await self.engine.stop(session_id)
        if not result.success:
            raise AppError(
                errcode=AppErrorCode.E_ENGINE_STOP_FAILED,
                errmesg=f"Streaming engine failed to stop ingest {session_id}: {result.error}",
                status_code=HttpStatusCode.BAD_GATEWAY,
            )

        logger.info(f"⏹️  Ingest stream {session_id} stopped by owner")
        return IngestStopResponse(stopped=True, message="Ingest stream stopped")
