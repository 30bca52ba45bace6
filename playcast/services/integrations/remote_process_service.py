"""Remote command execution on streaming servers.

Commands are opaque strings built by the caller; this service only resolves the
server's address and runs the string through `ssh`.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from playcast.app_config import get_app_environ_config
from playcast.schemas import StreamingServer

from .integration_results import RemoteCommandResult, RemoteExecutionError

# Demo-safe canned output: one matching process for probe commands.
_DEMO_STDOUT = "1\n"


class RemoteProcessService:
    """Runs one shell-level command on a named streaming server."""

    def __init__(self, demo_mode: bool | None = None) -> None:
        self._cfg = get_app_environ_config()
        self._demo_mode = self._cfg.DEMO_MODE if demo_mode is None else demo_mode

    async def _resolve_server(self, server_id: int) -> StreamingServer:
        server = await StreamingServer.find_one(StreamingServer.server_id == server_id)
        if not server:
            raise RemoteExecutionError(f"Streaming server not found: {server_id}")
        if not server.online:
            raise RemoteExecutionError(f"Streaming server {server_id} is offline")
        return server

    def _ssh_args(self, server: StreamingServer, command: str) -> list[str]:
        return [
            "ssh",
            "-o",
            "BatchMode=yes",
            "-o",
            f"ConnectTimeout={self._cfg.SSH_CONNECT_TIMEOUT_SECONDS}",
            "-p",
            str(server.ssh_port),
            f"{self._cfg.SSH_USER}@{server.host}",
            command,
        ]

    async def execute(self, server_id: int, command: str) -> RemoteCommandResult:
        """Execute a command on the server and return its output and exit status.

        A non-zero exit status is returned, not raised.

        Raises:
            RemoteExecutionError: If the server is unknown or the transport fails.
        """
        if self._demo_mode:
            logger.info(f"Remote DEMO_MODE=true: stubbed command on server {server_id}")
            logger.debug(f"Stubbed command: {command}")
            return RemoteCommandResult(stdout=_DEMO_STDOUT, exit_code=0)

        server = await self._resolve_server(server_id)
        logger.debug(f"Executing on server {server_id} ({server.host}): {command}")

        try:
            process = await asyncio.create_subprocess_exec(
                *self._ssh_args(server, command),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RemoteExecutionError(f"Failed to spawn ssh: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._cfg.SSH_COMMAND_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise RemoteExecutionError(
                f"Command timed out after {self._cfg.SSH_COMMAND_TIMEOUT_SECONDS}s "
                f"on server {server_id}"
            ) from e

        result = RemoteCommandResult(
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            exit_code=process.returncode if process.returncode is not None else -1,
        )
        # ssh reserves 255 for its own connection failures
        if result.exit_code == 255:
            raise RemoteExecutionError(
                f"ssh connection to server {server_id} failed: {result.stderr.strip()}"
            )
        if not result.ok:
            logger.warning(
                f"Command on server {server_id} exited with {result.exit_code}: "
                f"{result.stderr.strip()[:500]}"
            )
        return result


remote_process_service = RemoteProcessService()
