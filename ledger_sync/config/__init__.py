"""Configuration package."""

from ledger_sync.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LoaderSettings,
    ProviderSettings,
    Settings,
    TelemetrySettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LoaderSettings",
    "ProviderSettings",
    "Settings",
    "TelemetrySettings",
    "get_settings",
    "validate_all_settings",
]
