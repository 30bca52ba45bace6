"""Tests for SMIL descriptor rendering and writing."""

import base64
import shlex
import xml.etree.ElementTree as ET
from unittest.mock import AsyncMock

import pytest

from playcast.services.integrations.integration_results import (
    RemoteCommandResult,
    RemoteExecutionError,
)
from playcast.services.integrations.playlist_descriptor_service import (
    PlaylistDescriptorService,
    render_smil,
)
from playcast.services.integrations.remote_process_service import RemoteProcessService
from tests.fixtures.documents import OWNER_ID, OWNER_LOGIN, insert_playlist


@pytest.fixture
def remote() -> AsyncMock:
    mock = AsyncMock(spec=RemoteProcessService)
    mock.execute.return_value = RemoteCommandResult()
    return mock


def written_document(command: str) -> str:
    args = shlex.split(command)
    encoded = args[args.index("echo") + 1]
    return base64.b64decode(encoded).decode()


class TestRenderSmil:
    @pytest.mark.usefixtures("clear_collections")
    async def test_renders_every_video(self, beanie_db):
        playlist = await insert_playlist(videos=3)

        document = render_smil(OWNER_LOGIN, playlist, scheduled="2026-01-01 10:00:00")

        root = ET.fromstring(document.split("\n", 1)[1])
        playlist_el = root.find("body/playlist")
        assert playlist_el.get("playOnStream") == OWNER_LOGIN
        assert playlist_el.get("scheduled") == "2026-01-01 10:00:00"
        videos = playlist_el.findall("video")
        assert [v.get("src") for v in videos] == [
            "mp4:videos/clip_0.mp4",
            "mp4:videos/clip_1.mp4",
            "mp4:videos/clip_2.mp4",
        ]
        assert videos[0].get("length") == "60"


@pytest.mark.usefixtures("clear_collections")
class TestGenerate:
    async def test_writes_descriptor_on_server(self, beanie_db, remote):
        await insert_playlist()
        service = PlaylistDescriptorService(remote=remote)

        result = await service.generate(OWNER_ID, OWNER_LOGIN, 7, "pl_main")

        assert result.success is True
        assert result.descriptor_path == service.descriptor_path(OWNER_LOGIN)
        server_id, command = remote.execute.await_args.args
        assert server_id == 7
        assert "mp4:videos/clip_1.mp4" in written_document(command)

    async def test_missing_playlist_is_reported(self, beanie_db, remote):
        result = await PlaylistDescriptorService(remote=remote).generate(
            OWNER_ID, OWNER_LOGIN, 7, "pl_missing"
        )

        assert result.success is False
        remote.execute.assert_not_awaited()

    async def test_empty_playlist_is_reported(self, beanie_db, remote):
        await insert_playlist(videos=0)

        result = await PlaylistDescriptorService(remote=remote).generate(
            OWNER_ID, OWNER_LOGIN, 7, "pl_main"
        )

        assert result.success is False

    async def test_remote_failure_is_reported(self, beanie_db, remote):
        await insert_playlist()
        remote.execute.side_effect = RemoteExecutionError("timeout")

        result = await PlaylistDescriptorService(remote=remote).generate(
            OWNER_ID, OWNER_LOGIN, 7, "pl_main"
        )

        assert result.success is False
        assert "timeout" in result.error

    async def test_non_zero_exit_is_reported(self, beanie_db, remote):
        await insert_playlist()
        remote.execute.return_value = RemoteCommandResult(exit_code=1, stderr="disk full")

        result = await PlaylistDescriptorService(remote=remote).generate(
            OWNER_ID, OWNER_LOGIN, 7, "pl_main"
        )

        assert result.success is False
        assert "disk full" in result.error
