"""
Configuration loaded from environment variables (or a local .env file).
"""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(default="sqlite:///./cow_monitor.db", description="SQLAlchemy database URL")
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # API
    cors_origins: str = Field(
        default="http://localhost:5173",
        description="CORS allowed origins (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")
    dev_mode: bool = Field(default=True, description="Development mode")

    # Pending RFID scans
    rfid_ttl_minutes: float = Field(default=10, gt=0, description="Lifetime of a pending RFID scan")
    rfid_sweep_interval_seconds: float = Field(default=300, gt=0, description="Expired scan sweep period")

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
