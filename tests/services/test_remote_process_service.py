"""Tests for remote command execution."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from playcast.services.integrations.integration_results import RemoteExecutionError
from playcast.services.integrations.remote_process_service import RemoteProcessService
from tests.fixtures.documents import insert_server

SPAWN = "playcast.services.integrations.remote_process_service.asyncio.create_subprocess_exec"


def fake_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.returncode = returncode
    return process


class TestDemoMode:
    async def test_demo_mode_stubs_execution(self):
        with patch(SPAWN, new=AsyncMock()) as spawn:
            result = await RemoteProcessService(demo_mode=True).execute(1, "echo hi")

        assert result.ok
        assert result.stdout.strip() == "1"
        spawn.assert_not_awaited()


@pytest.mark.usefixtures("clear_collections")
class TestExecute:
    async def test_runs_command_over_ssh(self, beanie_db):
        await insert_server(server_id=3, host="10.1.1.3", ssh_port=2222)

        with patch(SPAWN, new=AsyncMock(return_value=fake_process(b"2\n"))) as spawn:
            result = await RemoteProcessService(demo_mode=False).execute(3, "ps aux | wc -l")

        assert result.ok
        assert result.stdout == "2\n"
        args = spawn.await_args.args
        assert args[0] == "ssh"
        assert "2222" in args
        assert args[-2].endswith("@10.1.1.3")
        assert args[-1] == "ps aux | wc -l"

    async def test_non_zero_exit_is_returned(self, beanie_db):
        await insert_server(server_id=3)

        with patch(SPAWN, new=AsyncMock(return_value=fake_process(stderr=b"nope", returncode=1))):
            result = await RemoteProcessService(demo_mode=False).execute(3, "false")

        assert not result.ok
        assert result.exit_code == 1

    async def test_ssh_connection_failure_raises(self, beanie_db):
        await insert_server(server_id=3)

        with patch(SPAWN, new=AsyncMock(return_value=fake_process(stderr=b"refused", returncode=255))):
            with pytest.raises(RemoteExecutionError):
                await RemoteProcessService(demo_mode=False).execute(3, "true")

    async def test_unknown_server_raises(self, beanie_db):
        with pytest.raises(RemoteExecutionError):
            await RemoteProcessService(demo_mode=False).execute(99, "true")

    async def test_offline_server_raises(self, beanie_db):
        await insert_server(server_id=4, online=False)

        with pytest.raises(RemoteExecutionError):
            await RemoteProcessService(demo_mode=False).execute(4, "true")
