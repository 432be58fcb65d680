# /app/core/config.py

"""
Central configuration for the dashboard backend.

Every value can be overridden with an environment variable carrying the
`DASHBOARD_` prefix (e.g. `DASHBOARD_DATABASE_URL`). A single cached
instance is handed out by `get_settings()` so it can be used as a FastAPI
dependency.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DASHBOARD_", extra="ignore")

    # --- Provider Selection ---
    provider: Literal["sql", "rest"] = Field(
        default="sql",
        description="Which backend serves auth and student data.",
    )

    # --- SQL Provider ---
    database_url: str = "sqlite:///./dashboard.db"
    session_ttl_minutes: int = 60

    # --- Hosted REST Provider ---
    rest_url: Optional[str] = None
    rest_api_key: Optional[SecretStr] = None
    rest_timeout_seconds: float = 10.0

    # --- UI Timing ---
    auth_notification_seconds: float = 5.0
    dashboard_notification_seconds: float = 3.0
    redirect_delay_seconds: float = 1.0

    # --- Misc ---
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
