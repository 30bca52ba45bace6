"""Tests for the streaming engine REST client."""

import httpx
import orjson
import pytest

from playcast.services.integrations.integration_results import (
    EngineDestination,
    EngineSessionSpec,
    EngineUnavailableError,
)
from playcast.services.integrations.streaming_engine_service import (
    StreamingEngineService,
    build_engine_session_id,
    format_uptime,
    parse_liveness,
    split_engine_session_id,
)

VHOST = "/v2/servers/_defaultServer_/vhosts/_defaultVHost_"


def make_service(handler) -> StreamingEngineService:
    return StreamingEngineService(transport=httpx.MockTransport(handler), demo_mode=False)


def make_spec() -> EngineSessionSpec:
    return EngineSessionSpec(
        stream_id="st_1",
        owner_id="u.owner",
        owner_login="owner",
        descriptor_file="playlist_schedule.smil",
        bitrate=2500,
        destinations=[
            EngineDestination(
                platform_code="youtube",
                server="a.rtmp.youtube.com",
                application="live2",
                stream_key="abcd",
            )
        ],
    )


class TestHelpers:
    def test_format_uptime(self):
        assert format_uptime(3725) == "01:02:05"
        assert format_uptime(None) == "00:00:00"
        assert format_uptime(-4) == "00:00:00"

    def test_session_id_round_trip(self):
        session_id = build_engine_session_id("owner", "st_1")

        assert session_id == "owner/st_1"
        assert split_engine_session_id(session_id) == ("owner", "st_1")

    def test_malformed_session_id(self):
        with pytest.raises(ValueError):
            split_engine_session_id("no-separator")

    def test_parse_liveness_sums_connection_counts(self):
        liveness = parse_liveness(
            {
                "isConnected": True,
                "connectionCount": {"RTMP": 2, "HLS": 5},
                "bytesInRate": 312500,
                "uptime": 61,
            }
        )

        assert liveness.is_active is True
        assert liveness.viewers == 7
        assert liveness.bitrate == 2500
        assert liveness.uptime == "00:01:01"


class TestStreamingEngineService:
    async def test_start_posts_publisher(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"success": True, "isConnected": True})

        result = await make_service(handler).start(make_spec())

        assert result.success is True
        assert result.confirmed is True
        assert result.engine_session_id == "owner/st_1"
        assert seen[0].method == "POST"
        assert seen[0].url.path == f"{VHOST}/applications/owner/publishers/st_1"
        body = orjson.loads(seen[0].content)
        assert body["smilFile"] == "playlist_schedule.smil"
        assert body["pushTargets"][0]["host"] == "a.rtmp.youtube.com"

    async def test_start_accepted_but_unconfirmed(self):
        result = await make_service(lambda request: httpx.Response(200, json={})).start(make_spec())

        assert result.success is True
        assert result.confirmed is False

    async def test_start_rejected(self):
        result = await make_service(lambda request: httpx.Response(500, text="boom")).start(make_spec())

        assert result.success is False
        assert "500" in result.error

    async def test_start_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        result = await make_service(handler).start(make_spec())

        assert result.success is False
        assert "unreachable" in result.error

    async def test_stop_treats_missing_stream_as_stopped(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(404)

        result = await make_service(handler).stop("owner/st_1")

        assert result.success is True
        assert seen[0].method == "PUT"
        assert seen[0].url.path.endswith("/publishers/st_1/actions/stop")

    async def test_pause_failure_is_reported(self):
        result = await make_service(lambda request: httpx.Response(404)).pause("owner/st_1")

        assert result.success is False

    async def test_query_liveness_inactive_on_404(self):
        liveness = await make_service(lambda request: httpx.Response(404)).query_liveness("owner/st_1")

        assert liveness.is_active is False

    async def test_query_liveness_reads_monitoring(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith(
                "/applications/owner/instances/_definst_/incomingstreams/st_1/monitoring/current"
            )
            return httpx.Response(200, json={"isConnected": True, "connectionCount": 4, "uptime": 10})

        liveness = await make_service(handler).query_liveness("owner/st_1")

        assert liveness.is_active is True
        assert liveness.viewers == 4

    async def test_query_liveness_server_error_raises(self):
        with pytest.raises(EngineUnavailableError):
            await make_service(lambda request: httpx.Response(503)).query_liveness("owner/st_1")

    async def test_test_connection(self):
        assert await make_service(lambda request: httpx.Response(200, json={})).test_connection()
        assert not await make_service(lambda request: httpx.Response(401)).test_connection()

    async def test_demo_mode_makes_no_requests(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected in demo mode")

        service = StreamingEngineService(transport=httpx.MockTransport(handler), demo_mode=True)

        assert (await service.start(make_spec())).confirmed is True
        assert (await service.stop("owner/st_1")).success is True
        assert (await service.query_liveness("owner/st_1")).is_active is True
