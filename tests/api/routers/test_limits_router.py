"""Unit tests for the limits router."""

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from playcast.api.dependency import User, get_current_user
from playcast.api.errors import app_error_handler
from playcast.api.routers.limits import get_limit_service, router
from playcast.domain.live.limits.limit_domain import LimitService
from playcast.domain.live.limits.limit_evaluator import evaluate
from playcast.domain.live.limits.limit_models import IngestConfigResponse, IngestEndpoints
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


def make_config() -> IngestConfigResponse:
    evaluation = evaluate(plan_bitrate=2500, plan_max_viewers=100, storage_used=0, storage_total=1000)
    return IngestConfigResponse(
        owner_login="owner",
        server_id=1,
        endpoints=IngestEndpoints(
            rtmp_url="rtmp://engine:1935/owner",
            stream_key="owner_live",
            hls_url="http://engine:1935/owner/owner_live/playlist.m3u8",
            hls_secure_url="https://engine:443/owner/owner_live/playlist.m3u8",
            dash_url="http://engine:1935/owner/owner_live/manifest.mpd",
            rtsp_url="rtsp://engine:554/owner/owner_live",
            source_rtmp="rtmp://engine:1935/owner/owner",
            live_view_url="http://engine:1935/owner/owner/playlist.m3u8",
            recording_path="/content/owner/recordings/",
        ),
        max_bitrate=evaluation.allowed_bitrate,
        max_viewers=100,
        recording_enabled=False,
        limits=evaluation.limits,
    )


class TestIngestConfig:
    def test_returns_config(self, client: TestClient, mock_limit_service: AsyncMock):
        mock_limit_service.get_ingest_config.return_value = make_config()

        response = client.get("/limits/ingest_config", params={"bitrate": 1800})

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["endpoints"]["stream_key"] == "owner_live"
        assert results["limits"]["bitrate"]["max"] == 2500
        mock_limit_service.get_ingest_config.assert_awaited_once_with(
            "u.owner", requested_bitrate=1800
        )

    def test_account_not_found(self, client: TestClient, mock_limit_service: AsyncMock):
        mock_limit_service.get_ingest_config.side_effect = AppError(
            errcode=AppErrorCode.E_ACCOUNT_NOT_FOUND,
            errmesg="Streaming account not found",
            status_code=HttpStatusCode.NOT_FOUND,
        )

        response = client.get("/limits/ingest_config")

        assert response.status_code == 404
        assert response.json()["errcode"] == "E_ACCOUNT_NOT_FOUND"
