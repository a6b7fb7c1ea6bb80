"""Configuration package."""

from smartwealth.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    IdentitySettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "IdentitySettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
