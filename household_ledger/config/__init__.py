"""Configuration package."""

from household_ledger.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    OfflineSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "OfflineSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
