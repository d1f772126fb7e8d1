"""
Configuration settings for the homework portal.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable is read with the PORTAL_ prefix, e.g. PORTAL_DATABASE_PATH.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from homework_portal.db import DEFAULT_DB_PATH


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PORTAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    database_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="SQLite database file",
    )
    scratch_images_dir: str = Field(
        default=str(Path(DEFAULT_DB_PATH).parent / "scratch-images"),
        description="Directory where scratch pad images are written",
    )
    redis_url: str | None = Field(
        default=None,
        description="Redis URL for the assignments cache; caching is off when unset",
    )

    # ========================================
    # Rewards
    # ========================================
    base_reward: int = Field(
        default=10,
        ge=1,
        description="Coins for a correct answer on the first attempt",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts allowed on multi-attempt (math) questions",
    )
    attempt_multipliers: list[float] = Field(
        default=[1.0, 0.66, 0.33],
        description="Reward multiplier per attempt; the last entry applies beyond the list",
    )
    default_hint_cost: int = Field(
        default=5,
        ge=1,
        description="Fixed hint price recorded on problems authored without one",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum level written to stderr",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path (rotated at 10 MB)",
    )

    @field_validator("attempt_multipliers")
    @classmethod
    def _multipliers_not_empty(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("attempt_multipliers must contain at least one entry")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
