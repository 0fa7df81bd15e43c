"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``RAKSHAK_`` prefix; API credentials and infrastructure
settings use their canonical environment variable names via
``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the Rakshak application.

    Environment variables are loaded from a ``.env`` file when present.
    A missing Gemini or Google Maps key is not an error: the responder
    pipeline degrades to the remaining tiers.
    """

    model_config = SettingsConfigDict(
        env_prefix="RAKSHAK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── Gemini ─────────────────────────────────────────────────────────
    gemini_api_key: str = Field(default="", validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
    gemini_search_model: str = Field(default="gemini-2.0-flash", validation_alias="GEMINI_SEARCH_MODEL")

    # ── Google Maps / Places ───────────────────────────────────────────
    google_maps_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GOOGLE_MAPS_API_KEY", "VITE_GOOGLE_MAPS_API_KEY"),
    )
    places_search_radius_m: float = 20_000.0
    places_timeout_seconds: float = 10.0

    # ── Responder pipeline ─────────────────────────────────────────────
    responder_limit: int = Field(default=3, ge=1)
    max_responder_limit: int = Field(default=10, ge=1)

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")
    cors_origins: str = Field(default="", validation_alias="CORS_ORIGINS")

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Module-level singleton: import ``settings`` everywhere.
settings = Settings()
