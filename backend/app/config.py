# backend/app/config.py
"""
Application settings loaded from environment variables (prefix FINTRACK_)
and an optional .env file.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="Personal Finance Tracker")

    database_url: str = Field(
        default="sqlite:///backend/data/app.db",
        description="SQLAlchemy database URL",
    )

    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None, description="Optional JSON log file path")

    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed origins",
    )

    session_ttl_hours: int = Field(default=24 * 7, ge=1)

    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    trend_months: int = Field(default=6, ge=1, le=24)

    # minimum rapidfuzz score for mapping an imported category label
    import_category_score_cutoff: int = Field(default=80, ge=0, le=100)
    max_upload_size_mb: int = Field(default=5, ge=1, le=50)

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """Cached settings; call get_settings.cache_clear() to reload."""
    return Settings()
