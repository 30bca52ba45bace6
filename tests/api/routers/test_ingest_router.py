"""Unit tests for the ingest router."""

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from playcast.api.dependency import User, get_current_user
from playcast.api.errors import app_error_handler
from playcast.api.routers.ingest import router
from playcast.api.routers.limits import get_limit_service
from playcast.domain.live.limits.limit_domain import LimitService
from playcast.domain.live.limits.limit_models import IngestStatus, IngestStopResponse
from playcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


@pytest.fixture
def mock_limit_service() -> AsyncMock:
    return AsyncMock(spec=LimitService)


@pytest.fixture
def client(mock_limit_service: AsyncMock) -> TestClient:
    app = FastAPI()
    app.dependency_overrides[get_current_user] = lambda: User(user_id="u.owner", login="owner")
    app.dependency_overrides[get_limit_service] = lambda: mock_limit_service
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.include_router(router)
    return TestClient(app)


class TestIngestStatus:
    def test_returns_status(self, client: TestClient, mock_limit_service: AsyncMock):
        mock_limit_service.get_ingest_status.return_value = IngestStatus(
            is_live=True, viewers=5, bitrate=1800, uptime="00:01:00"
        )

        response = client.get("/ingest/status")

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["is_live"] is True
        assert results["viewers"] == 5
        mock_limit_service.get_ingest_status.assert_awaited_once_with("u.owner")

    def test_engine_down_is_still_ok(self, client: TestClient, mock_limit_service: AsyncMock):
        mock_limit_service.get_ingest_status.return_value = IngestStatus(
            engine_reachable=False, error="Streaming engine API unavailable"
        )

        response = client.get("/ingest/status")

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["is_live"] is False
        assert results["engine_reachable"] is False


class TestStopIngest:
    def test_stop(self, client: TestClient, mock_limit_service: AsyncMock):
        mock_limit_service.stop_ingest.return_value = IngestStopResponse(
            stopped=True, message="Ingest stream stopped"
        )

        response = client.post("/ingest/stop")

        assert response.status_code == 200
        assert response.json()["results"]["stopped"] is True
        mock_limit_service.stop_ingest.assert_awaited_once_with("u.owner")

    def test_engine_refusal(self, client: TestClient, mock_limit_service: AsyncMock):
        mock_limit_service.stop_ingest.side_effect = AppError(
            errcode=AppErrorCode.E_ENGINE_STOP_FAILED,
            errmesg="Streaming engine failed to stop ingest",
            status_code=HttpStatusCode.BAD_GATEWAY,
        )

        response = client.post("/ingest/stop")

        assert response.status_code == 502
        assert response.json()["errcode"] == "E_ENGINE_STOP_FAILED"
