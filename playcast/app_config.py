from pydantic import BaseModel

from playcast.config import config


class AppEnvironConfig(BaseModel):
    DEBUG: bool = config.get_bool("DEBUG", False)
    # Demo switch: when enabled, external integrations use stubs and avoid network calls.
    DEMO_MODE: bool = config.get_bool("DEMO_MODE", True)

    # HTTP server
    API_HOST: str = config.get_str("API_HOST", "0.0.0.0")
    API_PORT: int = config.get_int("API_PORT", 8000)
    API_WORKERS: int = config.get_int("API_WORKERS", 1)
    API_CORS_ORIGINS: list[str] = [
        origin.strip()
        for origin in config.get_str("API_CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    # MongoDB
    MONGO_URL: str = config.get_str("MONGO_URL", "mongodb://localhost:27017")
    MONGO_DB_NAME: str = config.get_str("MONGO_DB_NAME", "playcast")

    # Streaming engine REST API
    ENGINE_API_BASE_URL: str = config.get_str("ENGINE_API_BASE_URL", "http://localhost:8087")
    ENGINE_API_USER: str | None = config.get_str("ENGINE_API_USER") or None
    ENGINE_API_PASSWORD: str | None = config.get_str("ENGINE_API_PASSWORD") or None
    ENGINE_SERVER_NAME: str = config.get_str("ENGINE_SERVER_NAME", "_defaultServer_")
    ENGINE_VHOST_NAME: str = config.get_str("ENGINE_VHOST_NAME", "_defaultVHost_")
    ENGINE_HTTP_TIMEOUT_SECONDS: int = config.get_int("ENGINE_HTTP_TIMEOUT_SECONDS", 15)
    # Public hostname viewers and relays use to reach the engine (never the API host)
    ENGINE_PUBLIC_HOST: str = config.get_str("ENGINE_PUBLIC_HOST", "stream.example.com")
    ENGINE_CONTENT_DIR: str = config.get_str("ENGINE_CONTENT_DIR", "/home/streaming")
    ENGINE_CONF_DIR: str = config.get_str(
        "ENGINE_CONF_DIR", "/usr/local/WowzaStreamingEngine/conf"
    )
    ENGINE_SMIL_FILE: str = config.get_str("ENGINE_SMIL_FILE", "playlist_schedule.smil")

    # Remote execution
    SSH_USER: str = config.get_str("SSH_USER", "root")
    SSH_CONNECT_TIMEOUT_SECONDS: int = config.get_int("SSH_CONNECT_TIMEOUT_SECONDS", 10)
    SSH_COMMAND_TIMEOUT_SECONDS: int = config.get_int("SSH_COMMAND_TIMEOUT_SECONDS", 60)
    DEFAULT_SERVER_ID: int = config.get_int("DEFAULT_SERVER_ID", 1)

    # Orchestration timing
    START_VERIFY_DELAY_SECONDS: int = config.get_int("START_VERIFY_DELAY_SECONDS", 5)
    MONITOR_INITIAL_DELAY_SECONDS: int = config.get_int("MONITOR_INITIAL_DELAY_SECONDS", 30)
    MONITOR_INTERVAL_SECONDS: int = config.get_int("MONITOR_INTERVAL_SECONDS", 60)
    MONITOR_MAX_LIFETIME_SECONDS: int = config.get_int(
        "MONITOR_MAX_LIFETIME_SECONDS", 24 * 60 * 60
    )


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
