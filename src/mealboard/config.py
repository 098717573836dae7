"""
Meal Board - Configuration and settings.

Settings are read from the environment and an optional .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BoardSettings(BaseSettings):
    """
    Board settings.

    Only the Supabase connection is required; everything else has a
    sensible default for a single-site canteen.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase
    supabase_url: str
    supabase_anon_key: str

    # Reservation table
    mealboard_table: str = "meal_plan"

    # Local time used for cut-offs
    mealboard_timezone: str = "Asia/Shanghai"

    # Latest hour (minute 0) a slot can still be changed on its own day
    morning_cutoff_hour: int = Field(default=6, ge=0, le=23)
    noon_cutoff_hour: int = Field(default=9, ge=0, le=23)
    evening_cutoff_hour: int = Field(default=14, ge=0, le=23)

    # Identity stamped on new rows when no request context is set.
    # Unset means open-edit mode (no ownership enforcement).
    mealboard_identity: str | None = None

    # Application
    mealboard_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @property
    def is_development(self) -> bool:
        return self.mealboard_env == "development"

    @property
    def is_production(self) -> bool:
        return self.mealboard_env == "production"

    @property
    def cutoff_hours(self) -> dict[str, int]:
        """Cut-off hours keyed by slot name (MORNING, NOON, EVENING)."""
        return {
            "MORNING": self.morning_cutoff_hour,
            "NOON": self.noon_cutoff_hour,
            "EVENING": self.evening_cutoff_hour,
        }


@lru_cache
def get_settings() -> BoardSettings:
    """Get cached settings instance."""
    return BoardSettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: BoardSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
