"""Shell instructions for live relay processes.

A relay pulls the owner's live feed from the engine and pushes it to one
external destination. Facebook, TikTok and Kwai are pushed by a local ffmpeg
process inside a detached `screen` session; every other platform is pushed by
the engine itself through an entry in the owner's PushPublishMap.txt.
All interpolated values are shell-quoted.
"""

import posixpath
import shlex

import orjson

from playcast.app_config import get_app_environ_config

LOCAL_RELAY_PLATFORMS = frozenset({"facebook", "tiktok", "kwai"})
VERTICAL_PLATFORMS = frozenset({"tiktok", "kwai"})

PUSH_MAP_FILE = "PushPublishMap.txt"


def is_local_relay_platform(platform: str) -> bool:
    return platform.lower() in LOCAL_RELAY_PLATFORMS


class RelayCommandBuilder:
    def __init__(self, owner_login: str, relay_id: str):
        self._cfg = get_app_environ_config()
        self.owner_login = owner_login
        self.relay_id = relay_id

    @property
    def session_name(self) -> str:
        return f"{self.owner_login}_{self.relay_id}"

    @property
    def source_url(self) -> str:
        return f"rtmp://{self._cfg.ENGINE_PUBLIC_HOST}:1935/{self.owner_login}/{self.owner_login}"

    @property
    def push_map_path(self) -> str:
        return posixpath.join(self._cfg.ENGINE_CONF_DIR, self.owner_login, PUSH_MAP_FILE)

    def push_map_entry_name(self, platform: str) -> str:
        return f"{platform}_{self.relay_id}"

    @staticmethod
    def _ffmpeg_args(platform: str) -> list[str]:
        platform = platform.lower()
        if platform == "facebook":
            return [
                "-c:v", "copy", "-c:a", "copy", "-bsf:a", "aac_adtstoasc",
                "-preset", "ultrafast", "-strict", "experimental", "-threads", "1",
            ]
        if platform in VERTICAL_PLATFORMS:
            # 9:16 crop, re-encoded at 3000k video / 128k audio
            return [
                "-vf", "crop=ih*(9/16):ih", "-crf", "21", "-r", "24", "-g", "48",
                "-b:v", "3000000", "-b:a", "128k", "-ar", "44100",
                "-acodec", "aac", "-vcodec", "libx264", "-preset", "ultrafast",
                "-bufsize", "6000000", "-maxrate", "3500000", "-threads", "1",
            ]
        return ["-c:v", "copy", "-c:a", "copy", "-preset", "ultrafast", "-threads", "1"]

    def start(self, platform: str, destination_url: str, stream_key: str) -> str:
        """Launch ffmpeg in a detached screen session pushing to the destination."""
        target = f"{destination_url.rstrip('/')}/{stream_key}"
        ffmpeg = shlex.join(
            ["ffmpeg", "-re", "-i", self.source_url, *self._ffmpeg_args(platform), "-f", "flv", target]
        )
        return shlex.join(
            ["screen", "-dmS", self.session_name, "bash", "-c", f"{ffmpeg}; exec sh"]
        )

    def process_probe(self) -> str:
        """Count running ffmpeg relay processes of the owner."""
        return (
            "ps aux | grep ffmpeg | grep rtmp | "
            f"grep {shlex.quote(self.owner_login)} | wc -l"
        )

    def stop_screen(self) -> str:
        pattern = f"[0-9]*\\.{self.session_name}\\>"
        return f"screen -ls | grep -o {shlex.quote(pattern)} | xargs -I{{}} screen -X -S {{}} quit"

    def remove_push_map_entry(self, platform: str) -> str:
        entry = self.push_map_entry_name(platform)
        return f"sed -i {shlex.quote(f'/{entry}/d')} {shlex.quote(self.push_map_path)}"

    def stop(self, platform: str) -> str:
        """Quit the relay's screen session; engine-pushed platforms also drop their map entry."""
        if is_local_relay_platform(platform):
            return self.stop_screen()
        return f"{self.stop_screen()}; {self.remove_push_map_entry(platform)}"

    def add_push_map_entry(
        self, platform: str, destination_server: str, destination_application: str, stream_key: str
    ) -> str:
        """Append the engine push entry for this relay to the owner's map file."""
        entry = orjson.dumps(
            {
                "entryName": self.push_map_entry_name(platform),
                "profile": "rtmp",
                "application": destination_application.strip("/"),
                "host": destination_server.strip("/"),
                "streamName": stream_key,
            }
        ).decode()
        line = f"{self.owner_login}={entry}"
        return f"echo {shlex.quote(line)} >> {shlex.quote(self.push_map_path)}"
