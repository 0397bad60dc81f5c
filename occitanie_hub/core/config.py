"""
Quality standard: Centralized configuration.
Reason: Everything that changes between a laptop and production (database,
timeouts, bounding box, data files) is read from the environment or a .env
file instead of being hardcoded in the services.
"""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = PACKAGE_DIR / "data"


class Settings(BaseSettings):
    """Configuration loaded from EVENT_HUB_* environment variables / .env file."""

    model_config = SettingsConfigDict(env_prefix="EVENT_HUB_", env_file=".env", extra="ignore")

    # ── Database (only the debug flag is persisted) ──
    database_url: str = Field(default="sqlite+aiosqlite:///./data/event_hub.db")

    # ── Logs ──
    log_level: str = Field(default="INFO", description="Console log level")
    log_dir: str = Field(default="logs")

    # ── Upstream APIs ──
    http_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    page_size: int = Field(default=100, gt=0)
    sources_file: Path = Field(default=DATA_DIR / "sources.json")
    field_candidates_file: Path = Field(default=DATA_DIR / "field_candidates.json")

    # ── Occitanie bounding box (widened) ──
    bbox_min_lat: float = 41.5
    bbox_max_lat: float = 45.5
    bbox_min_lon: float = -1.5
    bbox_max_lon: float = 5.5

    # ── Normalization policies ──
    deduplicate: bool = Field(default=False, description="Drop cross-source duplicates")
    reject_missing_start_date: bool = Field(
        default=False, description="Drop records without a start date instead of using 'now'"
    )

    # ── Scheduler ──
    refresh_cron: Optional[str] = Field(
        default=None, description="Crontab expression for automatic refreshes, e.g. '0 3 * * *'"
    )

    # ── API Server ──
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)


settings = Settings()
