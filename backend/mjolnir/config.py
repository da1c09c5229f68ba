"""
Runtime settings.

Read by pydantic-settings from ``MJOLNIR_*`` environment variables or a
``.env`` file beside the package, and cached by get_settings(). Only the
transport edges consult them: CORS, body and rate limits, and logging. No
setting changes what an analysis or a conversion produces.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMATS = ("text", "json")


class Settings(BaseSettings):
    """Settings for the HTTP server and the log output."""

    model_config = SettingsConfigDict(
        env_prefix="MJOLNIR_",
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── HTTP edge ─────────────────────────────────────────────
    ALLOWED_ORIGINS: str = "http://localhost:3000"
    MAX_INPUT_SIZE_BYTES: int = 200_000
    RATE_LIMIT: str = "30/minute"
    RATE_LIMIT_ENABLED: bool = True

    # ── Logging ───────────────────────────────────────────────
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = ""
    # Empty picks by environment: text in development, json elsewhere.
    LOG_FORMAT: str = ""

    @field_validator("LOG_FORMAT")
    @classmethod
    def known_log_format(cls, value: str) -> str:
        value = value.strip().lower()
        if value and value not in LOG_FORMATS:
            raise ValueError(f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}")
        return value

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def json_logs(self) -> bool:
        if self.LOG_FORMAT:
            return self.LOG_FORMAT == "json"
        return not self.is_development


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide Settings instance."""
    return Settings()
