"""Transmission request operations: start, stop, pause, resume, remove, list, status."""

from __future__ import annotations

import asyncio

from loguru import logger
from pymongo import DESCENDING

from playcast.schemas import (
    AttachmentState,
    Playlist,
    Transmission,
    TransmissionAttachment,
    TransmissionState,
)
from playcast.services.integrations.integration_results import (
    EngineDestination,
    EngineSessionSpec,
    EngineUnavailableError,
)
from playcast.services.integrations.playlist_descriptor_service import PlaylistDescriptorService
from playcast.services.integrations.streaming_engine_service import StreamingEngineService
from playcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode
from playcast.utils.time_utils import utc_now

from ...utils.idgen import new_stream_id, new_transmission_id
from ..limits.limit_domain import LimitService
from ..limits.limit_evaluator import evaluate
from ._base import BaseService
from ._monitor import TransmissionMonitor, transmission_monitor
from ._platforms import PlatformResolver
from .transmission_models import (
    LiveStats,
    StreamType,
    TransmissionListResponse,
    TransmissionResponse,
    TransmissionStartParams,
    TransmissionStartResponse,
    TransmissionStatusResponse,
)
from .transmission_state_machine import TransmissionEvent


class TransmissionOperations(BaseService):
    """Transmission request handlers."""

    def __init__(
        self,
        engine: StreamingEngineService | None = None,
        descriptors: PlaylistDescriptorService | None = None,
        monitor: TransmissionMonitor | None = None,
    ):
        super().__init__(engine=engine, descriptors=descriptors)
        self.limits = LimitService(engine=self.engine)
        self.platforms = PlatformResolver()
        self.monitor = monitor or transmission_monitor
        self.verify_delay_seconds: float = self._cfg.START_VERIFY_DELAY_SECONDS

    def _playback_url(self, owner_login: str) -> str:
        host = self._cfg.ENGINE_PUBLIC_HOST
        return f"http://{host}:80/{owner_login}/{owner_login}/playlist.m3u8"

    @staticmethod
    def _validate_start(params: TransmissionStartParams) -> None:
        missing = [
            name
            for name, value in (("title", params.title), ("playlist_id", params.playlist_id))
            if not (value or "").strip()
        ]
        if missing:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg=f"Missing required fields: {', '.join(missing)}",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
        if params.bitrate_override is not None and params.bitrate_override <= 0:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg=f"Invalid bitrate: {params.bitrate_override}",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

    async def _get_startable_playlist(self, owner_id: str, playlist_id: str) -> Playlist:
        playlist = await Playlist.find_one(
            Playlist.playlist_id == playlist_id,
            Playlist.owner_id == owner_id,
        )
        if not playlist:
            raise AppError(
                errcode=AppErrorCode.E_PLAYLIST_NOT_FOUND,
                errmesg=f"Playlist not found: {playlist_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        if not playlist.videos:
            raise AppError(
                errcode=AppErrorCode.E_PLAYLIST_EMPTY,
                errmesg=f"Playlist {playlist_id} has no videos",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
        return playlist

    async def _verify_started(self, engine_session_id: str) -> str | None:
        """Wait, then check liveness once. Returns the failure reason, or None when live."""
        await asyncio.sleep(self.verify_delay_seconds)
        try:
            liveness = await self.engine.query_liveness(engine_session_id)
        except EngineUnavailableError as e:
            return f"Liveness check failed: {e}"
        if not liveness.is_active:
            return "Engine accepted the start but the stream is not live"
        return None

    async def start_transmission(
        self,
        params: TransmissionStartParams,
    ) -> TransmissionStartResponse:
        """
        Start a playlist transmission.

        Raises:
            AppError: On invalid input, an existing active transmission, a
                missing account/playlist, or when the engine cannot start or
                confirm the stream
        """
        self._validate_start(params)

        # Best-effort single-active check; two concurrent starts can both pass it
        existing = await self._get_active_transmission(params.owner_id)
        if existing:
            raise AppError(
                errcode=AppErrorCode.E_TRANSMISSION_ALREADY_ACTIVE,
                errmesg=(
                    f"Owner {params.owner_id} already has an active transmission: "
                    f"{existing.transmission_id}"
                ),
                status_code=HttpStatusCode.CONFLICT,
            )

        account = await self.limits.get_account(params.owner_id)
        server_id = self.limits.resolve_server_id(account)
        playlist = await self._get_startable_playlist(params.owner_id, params.playlist_id)

        if not await self.engine.test_connection():
            raise AppError(
                errcode=AppErrorCode.E_ENGINE_UNAVAILABLE,
                errmesg="Streaming engine is not reachable",
                status_code=HttpStatusCode.SERVICE_UNAVAILABLE,
            )

        evaluation = evaluate(
            plan_bitrate=account.bitrate,
            plan_max_viewers=account.max_viewers,
            storage_used=account.storage_used_mb,
            storage_total=account.storage_total_mb,
            requested_bitrate=params.bitrate_override,
            server_load=await self.limits.get_server_load(server_id),
        )
        for warning in evaluation.warnings:
            logger.warning(f"Limit warning for {params.owner_id}: {warning}")

        destinations = await self.platforms.resolve(params.owner_id, params.attachment_ids)

        descriptor = await self.descriptors.generate(
            params.owner_id, params.owner_login, server_id, playlist.playlist_id
        )
        if not descriptor.success:
            logger.warning(f"Descriptor generation failed, starting anyway: {descriptor.error}")

        recording_enabled = (
            account.recording_enabled if params.recording_enabled is None else params.recording_enabled
        )
        stream_id = new_stream_id()
        result = await self.engine.start(
            EngineSessionSpec(
                stream_id=stream_id,
                owner_id=params.owner_id,
                owner_login=params.owner_login,
                descriptor_file=self._cfg.ENGINE_SMIL_FILE,
                bitrate=evaluation.allowed_bitrate,
                recording_enabled=recording_enabled,
                destinations=[
                    EngineDestination(
                        platform_code=d.platform_code,
                        server=d.server,
                        application=d.application,
                        stream_key=d.stream_key,
                    )
                    for d in destinations
                ],
            )
        )
        if not result.success or not result.engine_session_id:
            raise AppError(
                errcode=AppErrorCode.E_ENGINE_START_FAILED,
                errmesg=f"Streaming engine failed to start the stream: {result.error}",
                status_code=HttpStatusCode.BAD_GATEWAY,
            )

        now = utc_now()
        transmission = Transmission(
            transmission_id=new_transmission_id(),
            owner_id=params.owner_id,
            owner_login=params.owner_login,
            title=params.title.strip(),
            description=params.description,
            server_id=server_id,
            stream_id=stream_id,
            engine_session_id=result.engine_session_id,
            playlist_id=playlist.playlist_id,
            finalization_playlist_id=params.finalization_playlist_id,
            loop_playlist=params.loop_playlist,
            bitrate=evaluation.allowed_bitrate,
            recording_enabled=recording_enabled,
            settings=params.settings,
            attachments=[
                TransmissionAttachment(
                    attachment_id=d.attachment_id,
                    platform_code=d.platform_code,
                    status=AttachmentState.CONNECTING,
                )
                for d in destinations
            ],
            created_at=now,
            updated_at=now,
        )

        failure = None if result.confirmed else await self._verify_started(result.engine_session_id)
        if failure:
            transmission.status = self._initial_state(TransmissionEvent.START_UNCONFIRMED)
            transmission.error_reason = failure
            transmission.ended_at = utc_now()
            transmission.attachments = [
                a.model_copy(update={"status": AttachmentState.DISCONNECTED})
                for a in transmission.attachments
            ]
            await transmission.insert()
            logger.error(
                f"❌ Transmission {transmission.transmission_id} not confirmed live: {failure}"
            )
            await self._stop_engine_best_effort(transmission)
            raise AppError(
                errcode=AppErrorCode.E_START_UNCONFIRMED,
                errmesg=f"Transmission {transmission.transmission_id} could not be confirmed live: {failure}",
                status_code=HttpStatusCode.BAD_GATEWAY,
            )

        transmission.status = self._initial_state(TransmissionEvent.START)
        transmission.started_at = now
        await transmission.insert()
        logger.info(
            f"✅ Transmission {transmission.transmission_id} started for {params.owner_login}: "
            f"playlist={playlist.playlist_id} bitrate={transmission.bitrate} "
            f"destinations={len(destinations)}"
        )

        self.monitor.schedule(transmission.transmission_id)

        return TransmissionStartResponse(
            transmission=self.to_response(transmission),
            warnings=evaluation.warnings,
            descriptor_path=descriptor.descriptor_path,
            playback_url=self._playback_url(params.owner_login),
        )

    async def stop_transmission(
        self,
        owner_id: str,
        transmission_id: str | None = None,
    ) -> TransmissionResponse:
        """
        Stop an active transmission.

        Raises AppError if not found or not active; stopping twice is rejected.
        """
        transmission = await self._resolve_for_event(
            owner_id, transmission_id, TransmissionState.ACTIVE
        )
        self._require_event(transmission, TransmissionEvent.STOP)

        self.monitor.cancel(transmission.transmission_id)
        await self._stop_engine_best_effort(transmission)
        await self.apply_event(
            transmission,
            TransmissionEvent.STOP,
            extra={Transmission.attachments: self._disconnected(transmission.attachments)},
        )
        logger.info(f"⏹️  Transmission {transmission.transmission_id} stopped by owner")
        return self.to_response(transmission)

    async def pause_transmission(
        self,
        owner_id: str,
        transmission_id: str | None = None,
    ) -> TransmissionResponse:
        """Pause an active transmission. The engine pause is best-effort."""
        transmission = await self._resolve_for_event(
            owner_id, transmission_id, TransmissionState.ACTIVE
        )
        await self.apply_event(transmission, TransmissionEvent.PAUSE)
        self.monitor.cancel(transmission.transmission_id)

        if transmission.engine_session_id:
            result = await self.engine.pause(transmission.engine_session_id)
            if not result.success:
                logger.warning(
                    f"Engine pause failed for {transmission.transmission_id}: {result.error}"
                )
        return self.to_response(transmission)

    async def resume_transmission(
        self,
        owner_id: str,
        transmission_id: str | None = None,
    ) -> TransmissionResponse:
        """Resume a paused transmission. The engine resume is best-effort."""
        transmission = await self._resolve_for_event(
            owner_id, transmission_id, TransmissionState.PAUSED
        )
        active = await self._get_active_transmission(owner_id)
        if active and active.transmission_id != transmission.transmission_id:
            raise AppError(
                errcode=AppErrorCode.E_TRANSMISSION_ALREADY_ACTIVE,
                errmesg=(
                    f"Cannot resume {transmission.transmission_id}: owner {owner_id} "
                    f"already has an active transmission {active.transmission_id}"
                ),
                status_code=HttpStatusCode.CONFLICT,
            )
        await self.apply_event(transmission, TransmissionEvent.RESUME)

        if transmission.engine_session_id:
            result = await self.engine.resume(transmission.engine_session_id)
            if not result.success:
                logger.warning(
                    f"Engine resume failed for {transmission.transmission_id}: {result.error}"
                )

        self.monitor.schedule(transmission.transmission_id)
        return self.to_response(transmission)

    async def remove_transmission(self, owner_id: str, transmission_id: str) -> None:
        """
        Remove a transmission in any status.

        Teardown is best-effort; once the record is found it is always deleted.
        """
        transmission = await self._get_owned_transmission(owner_id, transmission_id)

        self.monitor.cancel(transmission_id)
        if transmission.status not in TransmissionState.terminal_states():
            await self._stop_engine_best_effort(transmission)

        await transmission.delete()
        logger.info(f"🗑️  Transmission {transmission_id} removed (was {transmission.status})")

    async def list_transmissions(
        self,
        owner_id: str,
        status: TransmissionState | None = None,
    ) -> TransmissionListResponse:
        """Return the owner's transmissions, newest first."""
        filters = [Transmission.owner_id == owner_id]
        if status is not None:
            filters.append(Transmission.status == status)

        transmissions = await Transmission.find(*filters).sort([("created_at", DESCENDING)]).to_list()
        return TransmissionListResponse(
            transmissions=[self.to_response(t) for t in transmissions]
        )

    async def get_status(self, owner_id: str) -> TransmissionStatusResponse:
        """Return the owner's current transmission with live engine stats and ingest status."""
        account = await self.limits.find_account(owner_id)
        ingest = await self.limits.query_ingest(account) if account else None
        ingest_live = bool(ingest and ingest.is_live)

        transmission = await self._get_active_transmission(owner_id)
        if not transmission:
            transmission = await self._get_latest_in_state(owner_id, TransmissionState.PAUSED)
        if not transmission:
            return TransmissionStatusResponse(
                is_live=ingest_live,
                stream_type=StreamType.INGEST if ingest_live else None,
                ingest=ingest,
            )

        stats = LiveStats()
        if transmission.engine_session_id:
            try:
                liveness = await self.engine.query_liveness(transmission.engine_session_id)
                stats = LiveStats(**liveness.model_dump())
            except EngineUnavailableError as e:
                logger.warning(f"Live stats unavailable for {transmission.transmission_id}: {e}")

        playlist_live = transmission.status == TransmissionState.ACTIVE
        if playlist_live:
            stream_type = StreamType.PLAYLIST
        elif ingest_live:
            stream_type = StreamType.INGEST
        else:
            stream_type = None
        return TransmissionStatusResponse(
            is_live=playlist_live or ingest_live,
            stream_type=stream_type,
            transmission=self.to_response(transmission),
            stats=stats,
            ingest=ingest,
        )
