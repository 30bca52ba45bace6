"""Streaming engine REST client.

Thin async wrapper around the engine's REST API. Each owner has an engine
application named after their login; playlist streams are published from a
SMIL descriptor inside that application.

Usage:
    from playcast.services.integrations.streaming_engine_service import streaming_engine_service

    result = await streaming_engine_service.start(spec)
    if result.success:
        liveness = await streaming_engine_service.query_liveness(result.engine_session_id)
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from playcast.app_config import get_app_environ_config

from .integration_results import (
    EngineCallResult,
    EngineLiveness,
    EngineSessionSpec,
    EngineStartResult,
    EngineUnavailableError,
)

INSTANCE_NAME = "_definst_"


def format_uptime(seconds: float | int | None) -> str:
    total = int(seconds or 0)
    if total < 0:
        total = 0
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def build_engine_session_id(application: str, stream_id: str) -> str:
    return f"{application}/{stream_id}"


def split_engine_session_id(engine_session_id: str) -> tuple[str, str]:
    application, sep, stream_id = engine_session_id.partition("/")
    if not sep or not application or not stream_id:
        raise ValueError(f"Malformed engine session id: {engine_session_id!r}")
    return application, stream_id


def parse_liveness(data: dict[str, Any]) -> EngineLiveness:
    """Build an EngineLiveness from an incoming-stream monitoring payload."""
    connections = data.get("connectionCount") or 0
    if isinstance(connections, dict):
        viewers = sum(int(v or 0) for v in connections.values())
    else:
        viewers = int(connections)

    bytes_in_rate = float(data.get("bytesInRate") or 0)
    return EngineLiveness(
        is_active=bool(data.get("isConnected")),
        viewers=viewers,
        bitrate=int(bytes_in_rate * 8 / 1000),
        uptime=format_uptime(data.get("uptime")),
    )


class StreamingEngineService:
    """Service wrapper for the streaming engine REST API."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        demo_mode: bool | None = None,
    ) -> None:
        self._cfg = get_app_environ_config()
        self._transport = transport
        self._demo_mode = self._cfg.DEMO_MODE if demo_mode is None else demo_mode
        logger.info("StreamingEngineService initialized")

    def _client(self) -> httpx.AsyncClient:
        auth = None
        if self._cfg.ENGINE_API_USER and self._cfg.ENGINE_API_PASSWORD:
            auth = httpx.DigestAuth(self._cfg.ENGINE_API_USER, self._cfg.ENGINE_API_PASSWORD)
        return httpx.AsyncClient(
            base_url=self._cfg.ENGINE_API_BASE_URL.rstrip("/"),
            auth=auth,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=self._cfg.ENGINE_HTTP_TIMEOUT_SECONDS,
            transport=self._transport,
        )

    def _vhost_path(self) -> str:
        return f"/v2/servers/{self._cfg.ENGINE_SERVER_NAME}/vhosts/{self._cfg.ENGINE_VHOST_NAME}"

    def _publisher_path(self, application: str, stream_id: str) -> str:
        return f"{self._vhost_path()}/applications/{application}/publishers/{stream_id}"

    async def test_connection(self) -> bool:
        """Return True when the engine answers its server endpoint."""
        if self._demo_mode:
            return True

        try:
            async with self._client() as client:
                response = await client.get(f"/v2/servers/{self._cfg.ENGINE_SERVER_NAME}")
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning(f"Engine connectivity probe failed: {e}")
            return False

    async def start(self, spec: EngineSessionSpec) -> EngineStartResult:
        """Publish a SMIL-backed stream and push it to the given destinations."""
        application = spec.owner_login
        engine_session_id = build_engine_session_id(application, spec.stream_id)

        if self._demo_mode:
            logger.info(f"Engine DEMO_MODE=true: stubbed start for {engine_session_id}")
            return EngineStartResult(
                success=True, engine_session_id=engine_session_id, confirmed=True
            )

        body = {
            "streamName": spec.stream_id,
            "smilFile": spec.descriptor_file,
            "videoBitrate": spec.bitrate,
            "record": spec.recording_enabled,
            "pushTargets": [
                {
                    "entryName": f"{dest.platform_code}_{spec.stream_id}",
                    "host": dest.server,
                    "application": dest.application,
                    "streamName": dest.stream_key,
                }
                for dest in spec.destinations
            ],
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    self._publisher_path(application, spec.stream_id), json=body
                )
        except httpx.HTTPError as e:
            logger.error(f"Engine start request failed for {engine_session_id}: {e}")
            return EngineStartResult(success=False, error=f"Engine unreachable: {e}")

        if not response.is_success:
            logger.error(
                f"Engine start rejected for {engine_session_id}: "
                f"status={response.status_code} body={response.text[:500]}"
            )
            return EngineStartResult(
                success=False,
                error=f"Engine rejected start (HTTP {response.status_code})",
            )

        data = _json_or_empty(response)
        logger.debug(f"Engine start response for {engine_session_id}: {data}")
        if data.get("success") is False:
            return EngineStartResult(
                success=False, error=str(data.get("message") or "Engine reported failure")
            )

        # The engine publishes asynchronously unless it says the stream is already up.
        return EngineStartResult(
            success=True,
            engine_session_id=engine_session_id,
            confirmed=bool(data.get("isConnected")),
        )

    async def _action(self, engine_session_id: str, action: str) -> EngineCallResult:
        if self._demo_mode:
            logger.info(f"Engine DEMO_MODE=true: stubbed {action} for {engine_session_id}")
            return EngineCallResult(success=True)

        try:
            application, stream_id = split_engine_session_id(engine_session_id)
        except ValueError as e:
            return EngineCallResult(success=False, error=str(e))

        try:
            async with self._client() as client:
                response = await client.put(
                    f"{self._publisher_path(application, stream_id)}/actions/{action}"
                )
        except httpx.HTTPError as e:
            logger.warning(f"Engine {action} failed for {engine_session_id}: {e}")
            return EngineCallResult(success=False, error=f"Engine unreachable: {e}")

        if response.status_code == 404 and action == "stop":
            # Nothing published under this id anymore; the goal state is reached.
            logger.info(f"Engine stream {engine_session_id} already gone on stop")
            return EngineCallResult(success=True)

        if not response.is_success:
            return EngineCallResult(
                success=False,
                error=f"Engine rejected {action} (HTTP {response.status_code})",
            )
        return EngineCallResult(success=True)

    async def stop(self, engine_session_id: str) -> EngineCallResult:
        return await self._action(engine_session_id, "stop")

    async def pause(self, engine_session_id: str) -> EngineCallResult:
        """Best-effort pause; SMIL publishers stop temporarily."""
        return await self._action(engine_session_id, "pause")

    async def resume(self, engine_session_id: str) -> EngineCallResult:
        return await self._action(engine_session_id, "resume")

    async def query_liveness(self, engine_session_id: str) -> EngineLiveness:
        """Report whether the stream is live, with viewers, bitrate and uptime.

        Raises:
            EngineUnavailableError: If the engine could not be queried.
        """
        if self._demo_mode:
            return EngineLiveness(is_active=True)

        try:
            application, stream_id = split_engine_session_id(engine_session_id)
        except ValueError as e:
            raise EngineUnavailableError(str(e)) from e

        path = (
            f"{self._vhost_path()}/applications/{application}/instances/{INSTANCE_NAME}"
            f"/incomingstreams/{stream_id}/monitoring/current"
        )
        try:
            async with self._client() as client:
                response = await client.get(path)
        except httpx.HTTPError as e:
            raise EngineUnavailableError(f"Engine unreachable: {e}") from e

        if response.status_code == 404:
            return EngineLiveness(is_active=False)

        if not response.is_success:
            raise EngineUnavailableError(
                f"Engine monitoring failed (HTTP {response.status_code}) for {engine_session_id}"
            )

        return parse_liveness(_json_or_empty(response))


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


streaming_engine_service = StreamingEngineService()
