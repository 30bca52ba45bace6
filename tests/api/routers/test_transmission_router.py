"""Unit tests for transmission router endpoints."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from playcast.api.dependency import User, get_current_user
from playcast.api.errors import app_error_handler
from playcast.api.routers.transmission import get_transmission_service, router
from playcast.domain.live.transmission.transmission_domain import TransmissionService
from playcast.domain.live.transmission.transmission_models import (
    LiveStats,
    TransmissionListResponse,
    TransmissionResponse,
    TransmissionStartResponse,
    TransmissionStatusResponse,
)
from playcast.schemas import TransmissionState
from playcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


@pytest.fixture
def mock_user() -> User:
    """Create a mock authenticated user."""
    return User(user_id="u.owner", login="owner")


@pytest.fixture
def mock_transmission_service() -> AsyncMock:
    return AsyncMock(spec=TransmissionService)


@pytest.fixture
def test_app(mock_user: User, mock_transmission_service: AsyncMock) -> FastAPI:
    """Create FastAPI test app with dependency overrides."""
    app = FastAPI()
    app.dependency_overrides[get_current_user] = lambda: mock_user
    app.dependency_overrides[get_transmission_service] = lambda: mock_transmission_service
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.include_router(router)
    return app


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    return TestClient(test_app)


def make_transmission(status: TransmissionState = TransmissionState.ACTIVE) -> TransmissionResponse:
    now = datetime.now(timezone.utc)
    return TransmissionResponse(
        transmission_id="tx_1",
        owner_id="u.owner",
        owner_login="owner",
        title="Morning show",
        stream_id="st_1",
        engine_session_id="owner/st_1",
        playlist_id="pl_main",
        status=status,
        bitrate=2500,
        created_at=now,
        updated_at=now,
        started_at=now,
    )


class TestStartTransmission:
    def test_start_success(self, client: TestClient, mock_transmission_service: AsyncMock):
        # Arrange
        mock_transmission_service.start_transmission.return_value = TransmissionStartResponse(
            transmission=make_transmission(),
            warnings=["capped"],
            descriptor_path="/content/owner/playlist.smil",
            playback_url="http://engine/owner/owner/playlist.m3u8",
        )

        # Act
        response = client.post(
            "/transmission/start",
            json={"title": "Morning show", "playlist_id": "pl_main", "bitrate": 6000},
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["results"]["transmission"]["transmission_id"] == "tx_1"
        assert data["results"]["transmission"]["status"] == "active"
        assert data["results"]["transmission"]["created_at"].endswith("+00:00")
        assert data["results"]["warnings"] == ["capped"]

        params = mock_transmission_service.start_transmission.call_args.args[0]
        assert params.owner_id == "u.owner"
        assert params.owner_login == "owner"
        assert params.bitrate_override == 6000

    def test_start_conflict(self, client: TestClient, mock_transmission_service: AsyncMock):
        mock_transmission_service.start_transmission.side_effect = AppError(
            errcode=AppErrorCode.E_TRANSMISSION_ALREADY_ACTIVE,
            errmesg="already active",
            status_code=HttpStatusCode.CONFLICT,
        )

        response = client.post(
            "/transmission/start", json={"title": "Show", "playlist_id": "pl_main"}
        )

        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["errcode"] == "E_TRANSMISSION_ALREADY_ACTIVE"

    def test_start_rejects_non_positive_bitrate(self, client: TestClient):
        response = client.post(
            "/transmission/start",
            json={"title": "Show", "playlist_id": "pl_main", "bitrate": 0},
        )

        assert response.status_code == 422


class TestLifecycleEndpoints:
    @pytest.mark.parametrize(
        ("path", "method_name", "status"),
        [
            ("/transmission/stop", "stop_transmission", TransmissionState.FINALIZED),
            ("/transmission/pause", "pause_transmission", TransmissionState.PAUSED),
            ("/transmission/resume", "resume_transmission", TransmissionState.ACTIVE),
        ],
    )
    def test_lifecycle_calls_service(
        self, client: TestClient, mock_transmission_service: AsyncMock, path, method_name, status
    ):
        getattr(mock_transmission_service, method_name).return_value = make_transmission(status)

        response = client.post(path, json={"transmission_id": "tx_1"})

        assert response.status_code == 200
        assert response.json()["results"]["status"] == status.value
        getattr(mock_transmission_service, method_name).assert_awaited_once_with("u.owner", "tx_1")

    def test_stop_without_id_targets_latest(
        self, client: TestClient, mock_transmission_service: AsyncMock
    ):
        mock_transmission_service.stop_transmission.return_value = make_transmission(
            TransmissionState.FINALIZED
        )

        response = client.post("/transmission/stop", json={})

        assert response.status_code == 200
        mock_transmission_service.stop_transmission.assert_awaited_once_with("u.owner", None)

    def test_invalid_transition_is_conflict(
        self, client: TestClient, mock_transmission_service: AsyncMock
    ):
        mock_transmission_service.stop_transmission.side_effect = AppError(
            errcode=AppErrorCode.E_INVALID_STATE_TRANSITION,
            errmesg="Cannot stop",
            status_code=HttpStatusCode.CONFLICT,
        )

        response = client.post("/transmission/stop", json={"transmission_id": "tx_1"})

        assert response.status_code == 409
        assert response.json()["errcode"] == "E_INVALID_STATE_TRANSITION"

    def test_remove(self, client: TestClient, mock_transmission_service: AsyncMock):
        response = client.delete("/transmission/tx_1")

        assert response.status_code == 200
        assert response.json()["results"]["removed"] == "tx_1"
        mock_transmission_service.remove_transmission.assert_awaited_once_with("u.owner", "tx_1")


class TestQueries:
    def test_list_with_status_filter(self, client: TestClient, mock_transmission_service: AsyncMock):
        mock_transmission_service.list_transmissions.return_value = TransmissionListResponse(
            transmissions=[make_transmission(TransmissionState.FINALIZED)]
        )

        response = client.get("/transmission/list", params={"status": "finalized"})

        assert response.status_code == 200
        assert len(response.json()["results"]["transmissions"]) == 1
        mock_transmission_service.list_transmissions.assert_awaited_once_with(
            "u.owner", status=TransmissionState.FINALIZED
        )

    def test_status(self, client: TestClient, mock_transmission_service: AsyncMock):
        mock_transmission_service.get_status.return_value = TransmissionStatusResponse(
            is_live=True,
            transmission=make_transmission(),
            stats=LiveStats(viewers=12, bitrate=2400, uptime="00:10:00", is_active=True),
        )

        response = client.get("/transmission/status")

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["is_live"] is True
        assert results["stats"]["viewers"] == 12

    def test_status_when_idle(self, client: TestClient, mock_transmission_service: AsyncMock):
        mock_transmission_service.get_status.return_value = TransmissionStatusResponse(is_live=False)

        response = client.get("/transmission/status")

        assert response.json()["results"]["transmission"] is None


class TestAuthentication:
    def test_missing_identity_is_unauthorized(self, mock_transmission_service: AsyncMock):
        app = FastAPI()
        app.dependency_overrides[get_transmission_service] = lambda: mock_transmission_service
        app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
        app.include_router(router)

        response = TestClient(app).get("/transmission/list")

        assert response.status_code == 401
        assert response.json()["errcode"] == "E_BAD_TOKEN"
