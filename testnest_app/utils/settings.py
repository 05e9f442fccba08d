"""Runtime settings read from ``TESTNEST_*`` environment variables or ``.env``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from testnest_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from testnest_app.core.choice_resolver import GradingMode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TESTNEST_",
        env_file=".env",
        extra="ignore",
    )

    host: str = Field(default=DEFAULT_HOST, description="Interface the API server binds to")
    port: int = Field(default=DEFAULT_PORT, description="Port the API server listens on")
    log_level: str = Field(default="INFO", description="Logging level name")
    grading_mode: GradingMode = Field(default=GradingMode.TEXT, description="How answers are compared to the key")
    seed_files: list[Path] = Field(default_factory=list, description="Test files imported at startup")


@lru_cache()
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""
    return Settings()
