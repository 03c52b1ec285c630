from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "VapeTrack"
    APP_ENV: str = "dev"

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")
    TZ: str = "Asia/Kathmandu"

    APP_SECRET: str = "dev-insecure-secret-change-me"
    SESSION_COOKIE_NAME: str = "vt_session"
    SESSION_MAX_AGE: int = 60 * 60 * 12
    HTTPS_ONLY: bool = False

    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 60
    JWT_REFRESH_TTL_DAYS: int = 7
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)

    DB_URL: str = Field(default="", validation_alias=AliasChoices("DATABASE_URL", "DB_URL"))

    HOST: str = "0.0.0.0"
    PORT: int = 8089
    LOG_LEVEL: str = "INFO"

    CURRENCY_LABEL: str = "NRP"
    LOW_STOCK_THRESHOLD: int = 5

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return (value or "INFO").strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if not settings.DB_URL:
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
        settings.DB_URL = f"sqlite:///{settings.DATA_DIR / 'vapetrack.db'}"
    return settings


settings = get_settings()
