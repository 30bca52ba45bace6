"""Tests for the live-camera ingest stream status and stop."""

from unittest.mock import AsyncMock

import pytest

from playcast.domain.live.limits.limit_domain import INGEST_ENGINE_UNAVAILABLE, LimitService
from playcast.services.integrations.integration_results import (
    EngineCallResult,
    EngineLiveness,
    EngineUnavailableError,
)
from playcast.services.integrations.streaming_engine_service import StreamingEngineService
from playcast.utils.app_errors import AppError, AppErrorCode
from tests.fixtures.documents import OWNER_ID, insert_account


@pytest.fixture
def engine() -> AsyncMock:
    mock = AsyncMock(spec=StreamingEngineService)
    mock.query_liveness.return_value = EngineLiveness(
        is_active=True, viewers=12, bitrate=2200, uptime="00:15:00"
    )
    mock.stop.return_value = EngineCallResult(success=True)
    return mock


@pytest.mark.usefixtures("clear_collections")
class TestIngestStatus:
    async def test_live_ingest_reports_engine_stats(self, beanie_db, engine):
        await insert_account(recording_enabled=True)

        status = await LimitService(engine=engine).get_ingest_status(OWNER_ID)

        engine.query_liveness.assert_awaited_once_with("owner/owner")
        assert status.is_live is True
        assert status.viewers == 12
        assert status.bitrate == 2200
        assert status.uptime == "00:15:00"
        assert status.recording is True
        assert status.engine_reachable is True

    async def test_idle_ingest_is_not_recording(self, beanie_db, engine):
        await insert_account(recording_enabled=True)
        engine.query_liveness.return_value = EngineLiveness(is_active=False)

        status = await LimitService(engine=engine).get_ingest_status(OWNER_ID)

        assert status.is_live is False
        assert status.recording is False

    async def test_engine_down_returns_zeroed_stats(self, beanie_db, engine):
        await insert_account()
        engine.query_liveness.side_effect = EngineUnavailableError("timeout")

        status = await LimitService(engine=engine).get_ingest_status(OWNER_ID)

        assert status.is_live is False
        assert status.viewers == 0
        assert status.uptime == "00:00:00"
        assert status.engine_reachable is False
        assert status.error == INGEST_ENGINE_UNAVAILABLE

    async def test_missing_account_is_not_found(self, beanie_db, engine):
        with pytest.raises(AppError) as exc_info:
            await LimitService(engine=engine).get_ingest_status(OWNER_ID)

        assert exc_info.value.errcode == AppErrorCode.E_ACCOUNT_NOT_FOUND
        engine.query_liveness.assert_not_awaited()


@pytest.mark.usefixtures("clear_collections")
class TestStopIngest:
    async def test_stop_targets_ingest_stream(self, beanie_db, engine):
        await insert_account()

        result = await LimitService(engine=engine).stop_ingest(OWNER_ID)

        assert result.stopped is True
        engine.stop.assert_awaited_once_with("owner/owner")

    async def test_engine_refusal_is_bad_gateway(self, beanie_db, engine):
        await insert_account()
        engine.stop.return_value = EngineCallResult(success=False, error="HTTP 500")

        with pytest.raises(AppError) as exc_info:
            await LimitService(engine=engine).stop_ingest(OWNER_ID)

        assert exc_info.value.errcode == AppErrorCode.E_ENGINE_STOP_FAILED
        assert exc_info.value.status_code == 502
