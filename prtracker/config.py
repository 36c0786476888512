"""Configuration management from environment variables."""
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from prtracker.exceptions import ConfigurationError

# Load .env file
load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = PROJECT_ROOT / "data"

STORAGE_KEY = "pr_tracker_data"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration.

    Class attributes hold the environment defaults. Keyword arguments passed to
    the constructor override them on the instance only, so a test can build its
    own ``Config`` without touching the process-wide one.
    """

    # Remote spreadsheet endpoint (empty means local storage)
    SCRIPT_URL: str = os.getenv("SCRIPT_URL", os.getenv("GOOGLE_SCRIPT_URL", ""))

    # Local storage
    DATA_DIR: Path = Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    STORAGE_FILE: str = os.getenv("STORAGE_FILE", f"{STORAGE_KEY}.json")

    # HTTP
    TIMEOUT: float = float(os.getenv("TIMEOUT", "20"))
    MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "3"))
    READ_FALLBACK: bool = _env_bool("READ_FALLBACK", "true")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_JSON: bool = _env_bool("LOG_JSON", "false")

    # API Security
    API_KEY: str | None = os.getenv("API_KEY")

    def __init__(self, **overrides: Any):
        for key, value in overrides.items():
            if not key.isupper() or not hasattr(type(self), key):
                raise ConfigurationError(f"Unknown configuration key: {key}")
            setattr(self, key, value)

    @property
    def storage_path(self) -> Path:
        """Path of the JSON file holding the local records."""
        return Path(self.DATA_DIR) / self.STORAGE_FILE

    @property
    def use_remote(self) -> bool:
        """True when a usable remote endpoint is configured."""
        url = (self.SCRIPT_URL or "").strip()
        return bool(url) and url.startswith("http")

    def validate(self) -> None:
        """Validate configuration values."""
        errors = []
        if self.TIMEOUT <= 0:
            errors.append("TIMEOUT must be positive")
        if self.MAX_RETRIES < 1:
            errors.append("MAX_RETRIES must be at least 1")
        if self.SCRIPT_URL and not self.use_remote:
            errors.append(f"SCRIPT_URL is not an http(s) URL: {self.SCRIPT_URL!r}")
        if errors:
            raise ConfigurationError(f"Configuration errors: {', '.join(errors)}")


config = Config()
