from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "HR Leave"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "postgresql+asyncpg://hr_leave:hr_leave@db:5432/hr_leave"
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]
    log_level: str = "INFO"

    # Leave year boundaries: a year starting in month N runs to the end of month N-1 of the next year.
    leave_year_start_month: int = Field(default=1, ge=1, le=12)

    # Approval chain, in order. Known roles: MANAGER, HR.
    approval_levels: list[str] = ["MANAGER", "HR"]
    hr_approval_min_days: float | None = None

    # (years of tenure strictly below, days granted); tenure beyond the last tier gets the max.
    tenure_tiers: list[tuple[int, float]] = [(1, 6), (2, 8), (3, 10), (5, 12), (10, 15)]
    tenure_max_entitlement: float = 20
    tenure_scaled_leave_codes: list[str] = ["ANNUAL"]

    request_number_prefix: str = "LV"
    reason_min_length: int = Field(default=10, ge=1)

    @field_validator("approval_levels")
    @classmethod
    def _validate_approval_levels(cls, value: list[str]) -> list[str]:
        if not value:
            msg = "At least one approval level is required"
            raise ValueError(msg)
        return [level.upper() for level in value]


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
