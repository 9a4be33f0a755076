from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

# .env file is in the project root (parent of src/)
# Only use if it exists (CI uses environment variables directly)
# Path: core/config.py -> porkyfarm -> src -> project root -> .env
_ENV_FILE = Path(__file__).parent.parent.parent.parent / ".env"
_ENV_FILE = _ENV_FILE if _ENV_FILE.exists() else None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="PORKYFARM_",
        extra="ignore",
    )

    # Where per-user store documents live (defaults to .porkyfarm/ in project root)
    data_dir: Path | None = None

    # Farm timezone (IANA format, e.g., "Africa/Abidjan")
    # If not set, the local system date is used
    tz: str | None = None

    # Display units for weights ("metric" = kg, "imperial" = lb)
    # Note: the store always keeps kilograms internally
    display_units: Literal["imperial", "metric"] = "metric"
    currency: str = "FCFA"

    # Recent activity feed length and dashboard alert cap
    activity_limit: int = 50
    alert_limit: int = 10

    # Transactional email (Resend)
    resend_api_key: str | None = None
    email_from: str = "PorkyFarm <noreply@porkyfarm.app>"
    app_url: str = "https://porkyfarm.app"

    # Assistant rate limits (fixed window) and daily quota
    chat_rate_limit: int = 20
    chat_rate_window_seconds: int = 60
    api_rate_limit: int = 100
    api_rate_window_seconds: int = 60
    daily_chat_quota: int = 50


settings = Settings()


@lru_cache
def get_data_dir() -> Path:
    """Get the store directory.

    Uses settings.data_dir when configured. Otherwise looks for the project
    root by finding a .git or .claude directory and returns .porkyfarm/ within
    that root.
    """
    if settings.data_dir is not None:
        data_dir = Path(settings.data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / ".git").exists() or (parent / ".claude").exists():
            data_dir = parent / ".porkyfarm"
            data_dir.mkdir(exist_ok=True)
            return data_dir
    # Fallback to current working directory
    data_dir = Path.cwd() / ".porkyfarm"
    data_dir.mkdir(exist_ok=True)
    return data_dir


def get_farm_today() -> date:
    """Today's date in the farm's timezone (local date when tz is unset)."""
    if settings.tz:
        return datetime.now(ZoneInfo(settings.tz)).date()
    return date.today()
