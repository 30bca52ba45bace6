"""Reconciliation of active transmissions against the streaming engine.

Each active transmission gets one asyncio task that periodically asks the engine
whether the stream is still live. When it is not, the continuation policy
decides what happens next:

1. A finalization playlist is set: hand off to it once.
2. The playlist loops: regenerate the descriptor for the same playlist.
3. Otherwise: finalize the transmission.

Tasks are keyed by transmission id, replaced on re-schedule and cancelled on
stop/pause/remove. A wall-clock ceiling ends every loop without touching the
record. The registry is in-memory only and is rebuilt from active records on
process start.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from playcast.app_config import get_app_environ_config
from playcast.schemas import Transmission, TransmissionState
from playcast.services.integrations.integration_results import EngineUnavailableError
from playcast.utils.app_errors import AppError, AppErrorCode

from ._base import BaseService
from .transmission_models import ReconcileOutcome
from .transmission_state_machine import TransmissionEvent

FINALIZATION_TITLE_SUFFIX = " - Finalization"


class TransmissionReconciler(BaseService):
    """Runs single reconciliation ticks for a transmission."""

    def _server_id(self, transmission: Transmission) -> int:
        return transmission.server_id or self._cfg.DEFAULT_SERVER_ID

    async def reconcile_once(self, transmission_id: str) -> ReconcileOutcome:
        """Run one reconciliation tick.

        Returns:
            What the tick did; the loop keeps running only for outcomes with
            `keeps_running`.
        """
        transmission = await self._get_transmission_by_id(transmission_id)
        if not transmission or transmission.status != TransmissionState.ACTIVE:
            logger.debug(f"Transmission {transmission_id} no longer active, reconciliation exits")
            return ReconcileOutcome.EXITED

        if not transmission.engine_session_id:
            logger.warning(f"Transmission {transmission_id} has no engine session, reconciliation exits")
            return ReconcileOutcome.EXITED

        try:
            liveness = await self.engine.query_liveness(transmission.engine_session_id)
        except EngineUnavailableError as e:
            logger.warning(f"Liveness query failed for {transmission_id}, retrying next tick: {e}")
            return ReconcileOutcome.SKIPPED

        if liveness.is_active:
            return ReconcileOutcome.LIVE

        try:
            if transmission.finalization_playlist_id:
                return await self._hand_off(transmission)
            if transmission.loop_playlist:
                return await self._loop(transmission)
            return await self._finalize(transmission, reason="playlist ended")
        except AppError as e:
            if e.errcode != AppErrorCode.E_INVALID_STATE_TRANSITION:
                raise
            # A stop, pause or remove landed while this tick was running
            logger.info(f"Transmission {transmission_id} changed during reconciliation, exiting: {e}")
            return ReconcileOutcome.EXITED

    async def _hand_off(self, transmission: Transmission) -> ReconcileOutcome:
        next_playlist_id = transmission.finalization_playlist_id
        logger.info(
            f"🔁 Transmission {transmission.transmission_id} ended its playlist, "
            f"handing off to finalization playlist {next_playlist_id}"
        )
        result = await self.descriptors.generate(
            transmission.owner_id,
            transmission.owner_login,
            self._server_id(transmission),
            next_playlist_id,
        )
        if not result.success:
            logger.error(
                f"Finalization descriptor failed for {transmission.transmission_id}: {result.error}"
            )
            return await self._finalize(transmission, reason="finalization hand-off failed")

        # Clearing the follow-up makes the hand-off happen once
        await self.apply_event(
            transmission,
            TransmissionEvent.HANDOFF,
            extra={
                Transmission.playlist_id: next_playlist_id,
                Transmission.title: f"{transmission.title}{FINALIZATION_TITLE_SUFFIX}",
                Transmission.finalization_playlist_id: None,
            },
        )
        return ReconcileOutcome.HANDED_OFF

    async def _loop(self, transmission: Transmission) -> ReconcileOutcome:
        logger.info(
            f"🔁 Transmission {transmission.transmission_id} looping playlist {transmission.playlist_id}"
        )
        result = await self.descriptors.generate(
            transmission.owner_id,
            transmission.owner_login,
            self._server_id(transmission),
            transmission.playlist_id,
        )
        if not result.success:
            logger.error(f"Loop descriptor failed for {transmission.transmission_id}: {result.error}")
            return await self._finalize(transmission, reason="playlist loop failed")

        await self.apply_event(transmission, TransmissionEvent.LOOP)
        return ReconcileOutcome.LOOPED

    async def _finalize(self, transmission: Transmission, reason: str) -> ReconcileOutcome:
        await self._stop_engine_best_effort(transmission)
        await self.apply_event(
            transmission,
            TransmissionEvent.AUTO_FINALIZE,
            extra={
                Transmission.auto_finalized: True,
                Transmission.attachments: self._disconnected(transmission.attachments),
            },
        )
        logger.info(f"🏁 Transmission {transmission.transmission_id} auto-finalized ({reason})")
        return ReconcileOutcome.FINALIZED


class TransmissionMonitor:
    """Registry of reconciliation tasks, one per transmission id."""

    def __init__(
        self,
        reconciler: TransmissionReconciler | None = None,
        initial_delay_seconds: float | None = None,
        interval_seconds: float | None = None,
        max_lifetime_seconds: float | None = None,
    ):
        cfg = get_app_environ_config()
        self.reconciler = reconciler or TransmissionReconciler()
        self.initial_delay_seconds = (
            cfg.MONITOR_INITIAL_DELAY_SECONDS if initial_delay_seconds is None else initial_delay_seconds
        )
        self.interval_seconds = (
            cfg.MONITOR_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        )
        self.max_lifetime_seconds = (
            cfg.MONITOR_MAX_LIFETIME_SECONDS if max_lifetime_seconds is None else max_lifetime_seconds
        )
        self._tasks: dict[str, asyncio.Task] = {}

    def schedule(self, transmission_id: str) -> asyncio.Task:
        """Start reconciling a transmission, replacing any existing task for it."""
        self.cancel(transmission_id)
        task = asyncio.create_task(
            self._run(transmission_id), name=f"reconcile:{transmission_id}"
        )
        self._tasks[transmission_id] = task
        logger.info(
            f"⏱️  Reconciliation scheduled for {transmission_id}: "
            f"delay={self.initial_delay_seconds}s interval={self.interval_seconds}s"
        )
        return task

    def cancel(self, transmission_id: str) -> bool:
        task = self._tasks.pop(transmission_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug(f"Reconciliation cancelled for {transmission_id}")
        return True

    def is_scheduled(self, transmission_id: str) -> bool:
        task = self._tasks.get(transmission_id)
        return task is not None and not task.done()

    @property
    def scheduled_ids(self) -> list[str]:
        return [tid for tid, task in self._tasks.items() if not task.done()]

    async def restore(self) -> int:
        """Schedule reconciliation for every active transmission. Returns the count."""
        count = 0
        async for transmission in Transmission.find(
            Transmission.status == TransmissionState.ACTIVE
        ):
            self.schedule(transmission.transmission_id)
            count += 1
        logger.info(f"Restored reconciliation for {count} active transmission(s)")
        return count

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Reconciliation monitor stopped ({len(tasks)} task(s) cancelled)")

    async def _run(self, transmission_id: str) -> None:
        try:
            await asyncio.wait_for(self._loop(transmission_id), timeout=self.max_lifetime_seconds)
        except asyncio.TimeoutError:
            # Ceiling reached; the record is left as it is
            logger.warning(
                f"⏰ Reconciliation for {transmission_id} reached its "
                f"{self.max_lifetime_seconds}s ceiling, stopping loop"
            )
        finally:
            if self._tasks.get(transmission_id) is asyncio.current_task():
                del self._tasks[transmission_id]

    async def _loop(self, transmission_id: str) -> None:
        await asyncio.sleep(self.initial_delay_seconds)
        while True:
            try:
                outcome = await self.reconciler.reconcile_once(transmission_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Reconciliation tick failed for {transmission_id}: {e}")
                outcome = ReconcileOutcome.SKIPPED

            if not outcome.keeps_running:
                logger.info(f"Reconciliation for {transmission_id} finished: {outcome}")
                return
            await asyncio.sleep(self.interval_seconds)


transmission_monitor = TransmissionMonitor()
