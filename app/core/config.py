"""
Centralized configuration management.

Values are layered from three sources, later ones overriding earlier ones:
1) `env.example` (committed, safe defaults)
2) `env.local` (optional, developer-local, MUST NOT be committed)
3) System environment variables (highest priority)
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from loguru import logger

ENV_FILES = ("env.example", "env.local")


class EnvironConfig:
    """
    Singleton holding raw string settings, with typed getters that fall back to
    a default instead of failing on a bad value.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(EnvironConfig, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._config: dict[str, str | None] = {}
            self._load_config()
            EnvironConfig._initialized = True

    def _load_config(self):
        root = Path(__file__).parent.parent.parent

        for name in ENV_FILES:
            path = root / name
            if path.exists():
                self._config.update(dotenv_values(path))
                logger.info("Loaded environment variables from {}", path)

        self._config.update(os.environ)

    def __getitem__(self, key):
        """
        Raises:
            KeyError: If key not found
        """
        if key not in self._config:
            raise KeyError(f"Configuration key '{key}' not found")

        return self._config[key]

    def __contains__(self, key):
        return key in self._config

    def get(self, key, default=None):
        return self._config.get(key, default)

    def get_str(self, key: str, default: str | None = None) -> str | None:
        """Stripped value, or the default when the key is unset or blank."""
        raw = (self.get(key) or "").strip()
        return raw or default

    def get_bool(self, key: str, default: bool = False) -> bool:
        raw = self.get_str(key)
        if raw is None:
            return default
        return raw.lower() == "true"

    def get_int(self, key: str, default: int, minimum: int = 1) -> int:
        """
        Get an integer configuration value, falling back to the default when the
        value is missing, malformed or below the minimum.
        """
        raw = self.get_str(key)
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Invalid {} value '{}', defaulting to {}", key, raw, default)
            return default
        if value < minimum:
            logger.warning("{} value {} is below {}, defaulting to {}", key, value, minimum, default)
            return default
        return value


# Global configuration instance
config = EnvironConfig()
