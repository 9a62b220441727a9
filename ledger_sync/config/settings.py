"""
Configuration Management for ledger_sync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which backends and limits exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelemetrySettings(BaseSettings):
    """In-memory telemetry window configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TELEMETRY_",
        extra="ignore"
    )

    capacity: int = Field(
        default=200,
        ge=1,
        description="Maximum number of events kept in the telemetry log"
    )
    log_events: bool = Field(
        default=True,
        description="Mirror every recorded event to the structured log"
    )


class ProviderSettings(BaseSettings):
    """Data provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PROVIDER_",
        extra="ignore"
    )

    backend: Literal["memory", "google_sheets"] = Field(
        default="memory",
        description="Which data provider backend to use"
    )
    timeout_ms: int = Field(
        default=15000,
        ge=1,
        description="Deadline for a single provider call, in milliseconds"
    )
    simulated_latency_ms: int = Field(
        default=0,
        ge=0,
        description="Artificial latency for the in-memory backend"
    )


class LoaderSettings(BaseSettings):
    """Entity loader configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOADER_",
        extra="ignore"
    )

    retry_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Attempts per load (1 = no retry)"
    )
    retry_wait_min_s: float = Field(
        default=0.5,
        ge=0.0,
        description="Minimum backoff between attempts, in seconds"
    )
    retry_wait_max_s: float = Field(
        default=5.0,
        ge=0.0,
        description="Maximum backoff between attempts, in seconds"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the spreadsheet holding the ledger"
    )

    # Worksheet names within the spreadsheet
    delegations_sheet_name: str = Field(default="Delegations")
    accounts_sheet_name: str = Field(default="Accounts")
    categories_sheet_name: str = Field(default="Categories")
    transactions_sheet_name: str = Field(default="Transactions")

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before loading data."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for the structured log"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration
    # (the Sheets credentials are only required for that backend)

    @property
    def telemetry(self) -> TelemetrySettings:
        return TelemetrySettings()

    @property
    def provider(self) -> ProviderSettings:
        return ProviderSettings()

    @property
    def loader(self) -> LoaderSettings:
        return LoaderSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for each section that failed.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("telemetry", "provider", "loader", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    # Sheets credentials only matter when that backend is selected
    if results["provider"] and settings.provider.backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
