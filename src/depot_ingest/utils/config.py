"""Configuration management for environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

from depot_ingest.common.constants import DEFAULT_SOURCE_URL
from depot_ingest.utils.exceptions import ConfigurationError

DEFAULT_DIST_DIR = "dist"
DEFAULT_HTTP_TIMEOUT = 30.0


class Config:
    """Application configuration loaded from environment variables.

    Every setting is optional; the defaults build into ./dist from the public export.
    """

    def __init__(self) -> None:
        """Load configuration from .env file and environment."""
        env_path = Path(".env")
        if env_path.exists():
            load_dotenv(env_path)

        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.source_url = self._normalize_url(os.getenv("DEPOT_SOURCE_URL", DEFAULT_SOURCE_URL))
        self.dist_dir = Path(os.getenv("DEPOT_DIST_DIR", DEFAULT_DIST_DIR))
        self.http_timeout = self._get_positive_float("DEPOT_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT)

    @property
    def source_data_dir(self) -> Path:
        """Directory holding the raw downloaded tables."""
        return self.dist_dir / "source_data"

    @property
    def json_dir(self) -> Path:
        """Directory holding the parsed per-table JSON checkpoint."""
        return self.dist_dir / "json"

    @property
    def data_dir(self) -> Path:
        """Directory receiving the final documents."""
        return self.dist_dir / "data"

    @staticmethod
    def _normalize_url(url: str) -> str:
        url = url.strip()
        if not url:
            raise ConfigurationError("DEPOT_SOURCE_URL must not be empty")
        return url if url.endswith("/") else f"{url}/"

    def _get_positive_float(self, key: str, default: float) -> float:
        """Get a positive float environment variable.

        Args:
            key: Environment variable name
            default: Value used when the variable is not set

        Returns:
            Parsed value

        Raises:
            ConfigurationError: If the value is not a positive number
        """
        raw = os.getenv(key)
        if raw is None or not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as e:
            raise ConfigurationError(f"{key} must be a number, got {raw!r}") from e
        if value <= 0:
            raise ConfigurationError(f"{key} must be positive, got {raw!r}")
        return value
