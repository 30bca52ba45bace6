"""Collaborator doubles for transmission tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from playcast.domain.live.transmission._monitor import TransmissionMonitor
from playcast.services.integrations.integration_results import (
    DescriptorResult,
    EngineCallResult,
    EngineLiveness,
    EngineStartResult,
)
from playcast.services.integrations.playlist_descriptor_service import PlaylistDescriptorService
from playcast.services.integrations.streaming_engine_service import StreamingEngineService


@pytest.fixture
def engine() -> AsyncMock:
    """Engine that accepts and confirms everything."""
    mock = AsyncMock(spec=StreamingEngineService)
    mock.test_connection.return_value = True
    mock.start.side_effect = lambda spec: EngineStartResult(
        success=True,
        engine_session_id=f"{spec.owner_login}/{spec.stream_id}",
        confirmed=True,
    )
    mock.stop.return_value = EngineCallResult(success=True)
    mock.pause.return_value = EngineCallResult(success=True)
    mock.resume.return_value = EngineCallResult(success=True)
    mock.query_liveness.return_value = EngineLiveness(is_active=True, viewers=3, bitrate=2400)
    return mock


@pytest.fixture
def descriptors() -> AsyncMock:
    mock = AsyncMock(spec=PlaylistDescriptorService)
    mock.generate.return_value = DescriptorResult(
        success=True, descriptor_path="/content/owner/playlist.smil"
    )
    return mock


@pytest.fixture
def monitor() -> MagicMock:
    return MagicMock(spec=TransmissionMonitor)
