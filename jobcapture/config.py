"""
Runtime settings for job capture.

Values come from environment variables, optionally loaded from a ``.env``
file in the working directory.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

DEFAULT_JOB_TYPE = "FT"
DEFAULT_JOB_STATUS = "draft"
MAX_EMAIL_DESCRIPTION_LENGTH = 1000
MAX_COMPANY_NAME_LENGTH = 40
CAPTURE_DUE_DATE_DAYS = 7

UNKNOWN_TITLE = "Unknown Position"
UNKNOWN_COMPANY = "Unknown Company"
DEFAULT_LOCATION = "Remote"


def load_env(env_path: Optional[Path] = None) -> None:
    """Load .env from the working directory if present. Existing variables win."""
    env_path = env_path or Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("JOBCAPTURE_DB_PATH", "data/jobs.db"))
    )

    # Duplicate candidate window
    duplicate_window_days: int = field(
        default_factory=lambda: int(os.getenv("JOBCAPTURE_DUPLICATE_WINDOW_DAYS", "30"))
    )
    duplicate_max_records: int = field(
        default_factory=lambda: int(os.getenv("JOBCAPTURE_DUPLICATE_MAX_RECORDS", "50"))
    )
    title_threshold: float = field(
        default_factory=lambda: float(os.getenv("JOBCAPTURE_TITLE_THRESHOLD", "0.85"))
    )

    # Scraping
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("JOBCAPTURE_REQUEST_TIMEOUT", "15"))
    )
    max_retries: int = field(
        default_factory=lambda: int(os.getenv("JOBCAPTURE_MAX_RETRIES", "2"))
    )
    retry_base_delay: float = field(
        default_factory=lambda: float(os.getenv("JOBCAPTURE_RETRY_BASE_DELAY", "1.0"))
    )
    user_agent: str = field(
        default_factory=lambda: os.getenv("JOBCAPTURE_USER_AGENT", DEFAULT_USER_AGENT)
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.getenv("JOBCAPTURE_LOG_LEVEL", "INFO")
    )
    log_dir: Path = field(
        default_factory=lambda: Path(os.getenv("JOBCAPTURE_LOG_DIR", "logs"))
    )
    log_to_file: bool = field(
        default_factory=lambda: _env_bool("JOBCAPTURE_LOG_TO_FILE", "true")
    )

    # Acting user for CLI runs; None means unauthenticated
    user_id: Optional[str] = field(
        default_factory=lambda: os.getenv("JOBCAPTURE_USER_ID") or None
    )


def get_settings() -> Settings:
    return Settings()
