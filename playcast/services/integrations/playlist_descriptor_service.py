"""Playlist descriptor (SMIL) generation.

The engine plays a playlist from a SMIL schedule stored in the owner's content
directory. This service renders that document from the playlist's videos and
writes it on the owner's streaming server.
"""

from __future__ import annotations

import base64
import posixpath
import shlex
import xml.etree.ElementTree as ET

from loguru import logger

from playcast.app_config import get_app_environ_config
from playcast.schemas import Playlist
from playcast.utils.time_utils import utc_now

from .integration_results import DescriptorResult, RemoteExecutionError
from .remote_process_service import RemoteProcessService, remote_process_service


def render_smil(owner_login: str, playlist: Playlist, scheduled: str) -> str:
    """Render a SMIL schedule that plays the playlist on the owner's stream."""
    smil = ET.Element("smil")
    ET.SubElement(smil, "head")
    body = ET.SubElement(smil, "body")
    ET.SubElement(body, "stream", name=owner_login)

    playlist_el = ET.SubElement(
        body,
        "playlist",
        name=f"pl_{playlist.playlist_id}",
        playOnStream=owner_login,
        repeat="true",
        scheduled=scheduled,
    )
    for video in playlist.videos:
        ET.SubElement(
            playlist_el,
            "video",
            src=f"mp4:{video.path.lstrip('/')}",
            start="0",
            length=str(video.duration_seconds) if video.duration_seconds else "-1",
        )

    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(smil, encoding="unicode")


class PlaylistDescriptorService:
    def __init__(self, remote: RemoteProcessService | None = None) -> None:
        self._cfg = get_app_environ_config()
        self.remote = remote or remote_process_service

    def descriptor_path(self, owner_login: str) -> str:
        return posixpath.join(self._cfg.ENGINE_CONTENT_DIR, owner_login, self._cfg.ENGINE_SMIL_FILE)

    async def generate(
        self,
        owner_id: str,
        owner_login: str,
        server_id: int,
        playlist_id: str,
    ) -> DescriptorResult:
        """Render and write the owner's SMIL descriptor for a playlist.

        Expected failures (missing or empty playlist, remote write failure) are
        reported in the result, never raised.
        """
        playlist = await Playlist.find_one(
            Playlist.playlist_id == playlist_id,
            Playlist.owner_id == owner_id,
        )
        if not playlist:
            return DescriptorResult(success=False, error=f"Playlist not found: {playlist_id}")
        if not playlist.videos:
            return DescriptorResult(success=False, error=f"Playlist {playlist_id} has no videos")

        document = render_smil(
            owner_login, playlist, scheduled=utc_now().strftime("%Y-%m-%d %H:%M:%S")
        )
        path = self.descriptor_path(owner_login)
        encoded = base64.b64encode(document.encode()).decode()
        command = (
            f"mkdir -p {shlex.quote(posixpath.dirname(path))} && "
            f"echo {shlex.quote(encoded)} | base64 -d > {shlex.quote(path)}"
        )

        try:
            result = await self.remote.execute(server_id, command)
        except RemoteExecutionError as e:
            logger.warning(f"Descriptor write failed for {owner_login} on server {server_id}: {e}")
            return DescriptorResult(success=False, error=str(e))

        if not result.ok:
            return DescriptorResult(
                success=False,
                error=f"Descriptor write exited with {result.exit_code}: {result.stderr.strip()}",
            )

        logger.info(
            f"📄 Descriptor written for {owner_login}: playlist={playlist_id} "
            f"videos={playlist.total_videos} path={path}"
        )
        return DescriptorResult(success=True, descriptor_path=path)


playlist_descriptor_service = PlaylistDescriptorService()
