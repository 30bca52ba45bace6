"""Live relay operations."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from pymongo import DESCENDING

from playcast.app_config import get_app_environ_config
from playcast.schemas import LiveRelaySession, RelayState, StreamingAccount
from playcast.services.integrations.integration_results import (
    RemoteCommandResult,
    RemoteExecutionError,
)
from playcast.services.integrations.remote_process_service import (
    RemoteProcessService,
    remote_process_service,
)
from playcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode
from playcast.utils.time_utils import ensure_utc, utc_now

from ...utils.idgen import new_relay_id
from ...utils.rtmp_url import split_rtmp_url
from .relay_commands import RelayCommandBuilder, is_local_relay_platform
from .relay_models import (
    RelayListResponse,
    RelayResponse,
    RelayStartParams,
    RelayStartResponse,
)
from .relay_state_machine import RelayStateMachine

MAX_RELAY_WINDOW = timedelta(hours=24)


def validate_window(start: datetime, end: datetime) -> None:
    """Reject windows that end before they start or span more than 24 hours."""
    if end <= start:
        raise AppError(
            errcode=AppErrorCode.E_INVALID_SCHEDULE,
            errmesg="Scheduled end must be after scheduled start",
            status_code=HttpStatusCode.BAD_REQUEST,
        )
    if end - start > MAX_RELAY_WINDOW:
        raise AppError(
            errcode=AppErrorCode.E_INVALID_SCHEDULE,
            errmesg="A relay window cannot exceed 24 hours",
            status_code=HttpStatusCode.BAD_REQUEST,
        )


def parse_process_count(result: RemoteCommandResult) -> int:
    try:
        return int(result.stdout.strip() or 0)
    except ValueError:
        return 0


class RelayOperations:
    """Relay-related operations."""

    def __init__(self, remote: RemoteProcessService | None = None):
        self._cfg = get_app_environ_config()
        self.remote = remote or remote_process_service
        self.verify_delay_seconds: float = self._cfg.START_VERIFY_DELAY_SECONDS

    # ==================== LOOKUPS ====================

    async def _get_owned_relay(self, owner_id: str, relay_id: str) -> LiveRelaySession:
        relay = await LiveRelaySession.find_one(
            LiveRelaySession.relay_id == relay_id,
            LiveRelaySession.owner_id == owner_id,
        )
        if not relay:
            raise AppError(
                errcode=AppErrorCode.E_RELAY_NOT_FOUND,
                errmesg=f"Relay not found: {relay_id}",
                status_code=HttpStatusCode.NOT_FOUND,
            )
        return relay

    async def _get_active_relay(self, owner_id: str) -> LiveRelaySession | None:
        return await LiveRelaySession.find_one(
            LiveRelaySession.owner_id == owner_id,
            LiveRelaySession.status == RelayState.ACTIVE,
        )

    async def _resolve_server_id(self, owner_id: str) -> int:
        account = await StreamingAccount.find_one(StreamingAccount.owner_id == owner_id)
        if account and account.server_id:
            return account.server_id
        return self._cfg.DEFAULT_SERVER_ID

    @staticmethod
    def to_response(relay: LiveRelaySession) -> RelayResponse:
        return RelayResponse(**relay.model_dump(exclude={"id", "revision_id"}))

    # ==================== STATE ====================

    async def update_relay_state(
        self,
        relay: LiveRelaySession,
        new_state: RelayState,
        error_reason: str | None = None,
    ) -> LiveRelaySession:
        """
        Update relay state with validation and timestamp updates.

        ACTIVE always (re)stamps started_at; FINALIZED and ERROR stamp ended_at.

        Raises:
            AppError: If the transition is not allowed
        """
        if relay.status != new_state and not RelayStateMachine.can_transition(relay.status, new_state):
            raise AppError(
                errcode=AppErrorCode.E_INVALID_STATE_TRANSITION,
                errmesg=f"Invalid relay state transition: {relay.status} -> {new_state}",
                status_code=HttpStatusCode.CONFLICT,
            )

        now = utc_now()
        updates: dict[Any, Any] = {
            LiveRelaySession.status: new_state,
            LiveRelaySession.updated_at: now,
        }
        if new_state == RelayState.ACTIVE:
            updates[LiveRelaySession.started_at] = now
            updates[LiveRelaySession.ended_at] = None
            updates[LiveRelaySession.error_reason] = None
        else:
            updates[LiveRelaySession.ended_at] = now
            if new_state == RelayState.ERROR:
                updates[LiveRelaySession.error_reason] = error_reason

        await relay.set(updates)
        logger.info(f"Relay {relay.relay_id} state updated to {new_state}")
        return relay

    async def _fail(self, relay: LiveRelaySession, errcode: AppErrorCode, reason: str) -> AppError:
        await self.update_relay_state(relay, RelayState.ERROR, error_reason=reason)
        logger.error(f"❌ Relay {relay.relay_id} failed: {reason}")
        return AppError(errcode=errcode, errmesg=reason, status_code=HttpStatusCode.BAD_GATEWAY)

    # ==================== OPERATIONS ====================

    def _validate_start(self, params: RelayStartParams) -> tuple[datetime, datetime]:
        missing = [
            name
            for name, value in (
                ("platform", params.platform),
                ("destination_url", params.destination_url),
                ("stream_key", params.stream_key),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg=f"Missing required fields: {', '.join(missing)}",
                status_code=HttpStatusCode.BAD_REQUEST,
            )

        if params.immediate:
            start = utc_now()
            # Immediate relays without an end run for at most a day
            end = ensure_utc(params.scheduled_end) if params.scheduled_end else start + MAX_RELAY_WINDOW
        else:
            if not params.scheduled_start or not params.scheduled_end:
                raise AppError(
                    errcode=AppErrorCode.E_INVALID_SCHEDULE,
                    errmesg="Scheduled relays need both a start and an end",
                    status_code=HttpStatusCode.BAD_REQUEST,
                )
            start = ensure_utc(params.scheduled_start)
            end = ensure_utc(params.scheduled_end)

        validate_window(start, end)
        return start, end

    async def start_relay(self, params: RelayStartParams) -> RelayStartResponse:
        """
        Start a relay now, or persist it as scheduled.

        Raises:
            AppError: On invalid input or window, an existing active relay, or
                when the relay process cannot be launched or confirmed
        """
        start, end = self._validate_start(params)

        existing = await self._get_active_relay(params.owner_id)
        if existing:
            raise AppError(
                errcode=AppErrorCode.E_RELAY_ALREADY_ACTIVE,
                errmesg=(
                    f"Owner {params.owner_id} already has an active relay: {existing.relay_id}. "
                    "Stop it before starting a new one."
                ),
                status_code=HttpStatusCode.CONFLICT,
            )

        platform = params.platform.strip().lower()
        destination_server, destination_application = split_rtmp_url(params.destination_url)
        now = utc_now()
        relay = LiveRelaySession(
            relay_id=new_relay_id(),
            owner_id=params.owner_id,
            owner_login=params.owner_login,
            platform=platform,
            server_id=await self._resolve_server_id(params.owner_id),
            destination_url=params.destination_url.strip(),
            destination_server=destination_server,
            destination_application=destination_application,
            stream_key=params.stream_key.strip(),
            immediate=params.immediate,
            scheduled_start=start,
            scheduled_end=end,
            status=RelayState.SCHEDULED,
            created_at=now,
            updated_at=now,
        )
        await relay.insert()

        commands = RelayCommandBuilder(relay.owner_login, relay.relay_id)
        response = RelayStartResponse(
            relay=self.to_response(relay),
            source_rtmp=commands.source_url,
            view_url=(
                f"http://{self._cfg.ENGINE_PUBLIC_HOST}:1935/"
                f"{relay.owner_login}/{relay.owner_login}/playlist.m3u8"
            ),
        )

        if not params.immediate:
            logger.info(f"📅 Relay {relay.relay_id} scheduled for {start.isoformat()}")
            return response

        try:
            result = await self.remote.execute(
                relay.server_id,
                commands.start(platform, relay.destination_url, relay.stream_key),
            )
        except RemoteExecutionError as e:
            raise await self._fail(
                relay, AppErrorCode.E_REMOTE_EXECUTION_FAILED, f"Relay process launch failed: {e}"
            ) from e
        if not result.ok:
            raise await self._fail(
                relay,
                AppErrorCode.E_REMOTE_EXECUTION_FAILED,
                f"Relay process launch exited with {result.exit_code}",
            )

        await asyncio.sleep(self.verify_delay_seconds)

        try:
            probe = await self.remote.execute(relay.server_id, commands.process_probe())
            process_count = parse_process_count(probe)
        except RemoteExecutionError as e:
            logger.warning(f"Relay process probe failed for {relay.relay_id}: {e}")
            process_count = 0

        if process_count == 0:
            raise await self._fail(
                relay,
                AppErrorCode.E_START_UNCONFIRMED,
                "Relay process is not running; check the destination server and key",
            )

        await self.update_relay_state(relay, RelayState.ACTIVE)
        logger.info(
            f"✅ Relay {relay.relay_id} ({platform}) started for {relay.owner_login} "
            f"on server {relay.server_id}"
        )
        response.relay = self.to_response(relay)
        return response

    async def _teardown(self, relay: LiveRelaySession) -> None:
        """Run the stop instruction; failures are logged, never raised."""
        commands = RelayCommandBuilder(relay.owner_login, relay.relay_id)
        try:
            result = await self.remote.execute(relay.server_id, commands.stop(relay.platform))
        except RemoteExecutionError as e:
            logger.warning(f"Relay teardown failed for {relay.relay_id}: {e}")
            return
        if not result.ok:
            logger.warning(
                f"Relay teardown for {relay.relay_id} exited with {result.exit_code}: "
                f"{result.stderr.strip()}"
            )

    async def stop_relay(self, owner_id: str, relay_id: str) -> RelayResponse:
        """
        Stop an active or scheduled relay.

        Raises AppError if not found, or if the relay is not running or scheduled.
        """
        relay = await self._get_owned_relay(owner_id, relay_id)
        if not RelayStateMachine.is_stoppable(relay.status):
            raise AppError(
                errcode=AppErrorCode.E_INVALID_STATE_TRANSITION,
                errmesg=f"Relay {relay_id} is {relay.status} and cannot be stopped",
                status_code=HttpStatusCode.CONFLICT,
            )

        await self._teardown(relay)
        await self.update_relay_state(relay, RelayState.FINALIZED)
        logger.info(f"⏹️  Relay {relay_id} stopped by owner")
        return self.to_response(relay)

    async def restart_relay(self, owner_id: str, relay_id: str) -> RelayResponse:
        """
        Re-register the engine push entry of a relay and mark it active.

        Raises:
            AppError: If not found, the platform is pushed by a local relay
                process, another relay is active, or the entry cannot be written
        """
        relay = await self._get_owned_relay(owner_id, relay_id)
        if is_local_relay_platform(relay.platform):
            raise AppError(
                errcode=AppErrorCode.E_RESTART_UNSUPPORTED,
                errmesg=(
                    f"Restart is not supported for {relay.platform}. "
                    "Remove the relay and create a new one."
                ),
                status_code=HttpStatusCode.BAD_REQUEST,
            )

        other = await self._get_active_relay(owner_id)
        if other and other.relay_id != relay.relay_id:
            raise AppError(
                errcode=AppErrorCode.E_RELAY_ALREADY_ACTIVE,
                errmesg=f"Owner {owner_id} already has an active relay: {other.relay_id}",
                status_code=HttpStatusCode.CONFLICT,
            )

        commands = RelayCommandBuilder(relay.owner_login, relay.relay_id)
        command = commands.add_push_map_entry(
            relay.platform,
            relay.destination_server,
            relay.destination_application,
            relay.stream_key,
        )
        try:
            result = await self.remote.execute(relay.server_id, command)
        except RemoteExecutionError as e:
            raise await self._fail(
                relay, AppErrorCode.E_REMOTE_EXECUTION_FAILED, f"Relay restart failed: {e}"
            ) from e
        if not result.ok:
            raise await self._fail(
                relay,
                AppErrorCode.E_REMOTE_EXECUTION_FAILED,
                f"Relay restart exited with {result.exit_code}",
            )

        await self.update_relay_state(relay, RelayState.ACTIVE)
        logger.info(f"🔁 Relay {relay_id} ({relay.platform}) restarted for {relay.owner_login}")
        return self.to_response(relay)

    async def remove_relay(self, owner_id: str, relay_id: str) -> None:
        """
        Remove a relay in any status.

        Teardown is best-effort; once the relay is found it is always deleted.
        """
        relay = await self._get_owned_relay(owner_id, relay_id)
        try:
            await self._teardown(relay)
        except Exception as e:
            logger.exception(f"Unexpected teardown error for relay {relay_id}: {e}")

        await relay.delete()
        logger.info(f"🗑️  Relay {relay_id} removed (was {relay.status})")

    async def list_relays(self, owner_id: str) -> RelayListResponse:
        """Return the owner's relays, newest first."""
        relays = (
            await LiveRelaySession.find(LiveRelaySession.owner_id == owner_id)
            .sort([("created_at", DESCENDING)])
            .to_list()
        )
        return RelayListResponse(relays=[self.to_response(r) for r in relays])
