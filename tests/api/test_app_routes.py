"""Tests for the assembled application: route loading and error envelopes."""

from fastapi.testclient import TestClient

from playcast.main import app


class TestAppRoutes:
    def test_health(self):
        # Lifespan is not entered; no database is needed
        response = TestClient(app).get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["results"] == "OK"

    def test_routers_are_mounted_under_api_prefix(self):
        paths = {route.path for route in app.routes}

        assert "/api/v1/transmission/start" in paths
        assert "/api/v1/transmission/{transmission_id}" in paths
        assert "/api/v1/relay/restart" in paths
        assert "/api/v1/limits/ingest_config" in paths
        assert "/api/v1/ingest/status" in paths
        assert "/api/v1/ingest/stop" in paths

    def test_missing_identity_headers(self):
        response = TestClient(app).get("/api/v1/transmission/list")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["errcode"] == "E_BAD_TOKEN"

    def test_validation_error_envelope(self):
        response = TestClient(app).post(
            "/api/v1/relay/start",
            json={"platform": "youtube"},
            headers={"X-User-Id": "u.owner"},
        )

        assert response.status_code == 422
        assert response.json()["errcode"] == "E_INVALID_REQUEST"
