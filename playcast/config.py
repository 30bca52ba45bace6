"""
Centralized configuration management.

Values are layered, later sources overriding earlier ones:
1) `env.example` (committed, safe placeholders)
2) `env.local` (optional, MUST NOT be committed)
3) System environment variables (highest priority)
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from loguru import logger


class EnvironConfig:
    """
    Singleton configuration class that loads environment variables from env files
    and system environment, providing typed access with default values.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(EnvironConfig, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._config = {}
            self._load_config()
            EnvironConfig._initialized = True

    def _load_config(self):
        root = Path(__file__).parent.parent

        example_path = root / "env.example"
        if example_path.exists():
            self._config.update(dotenv_values(example_path))
            logger.info("Loaded environment variables from {}", example_path)

        local_path = root / "env.local"
        if local_path.exists():
            self._config.update(dotenv_values(local_path))
            logger.info("Loaded and overrode environment variables from {}", local_path)

        self._config.update(os.environ)

    def get_str(self, key: str, default: str = "") -> str:
        """Get a stripped string value, falling back to default when unset or blank."""
        value = self._config.get(key)
        if value is None:
            return default
        return str(value).strip() or default

    def get_int(self, key: str, default: int) -> int:
        value = self.get_str(key)
        if not value:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer for {}: '{}', defaulting to {}", key, value, default)
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get_str(key)
        if not value:
            return default
        return value.lower() in {"true", "1", "yes", "on"}


config = EnvironConfig()
