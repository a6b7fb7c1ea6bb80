"""
Configuration Management for SmartWealth

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

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
        description="ID of the Google Sheets spreadsheet to use"
    )

    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )
    rows_per_sheet: int = Field(
        default=1000,
        ge=10,
        description="Initial row count for newly created ledger sheets"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class GeminiSettings(BaseSettings):
    """
    Gemini LLM configuration.

    The API key is optional: without it the advisor answers with a
    fixed message and price refresh falls back to local simulation.
    """

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )
    advice_transaction_limit: int = Field(
        default=50,
        ge=1,
        le=500,
        description="How many recent transactions are sent to the advisor"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class IdentitySettings(BaseSettings):
    """Identity of the single user this instance serves."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTWEALTH_USER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    id: str = Field(
        default="local",
        min_length=1,
        description="Opaque user id used to scope stored records"
    )
    display_name: str = Field(
        default="User",
        description="Name shown in the sidebar"
    )


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Where ledger records are kept"
    )
    seed_demo_data: bool = Field(
        default=True,
        description="Write the demo ledger on first use"
    )

    # Reports
    trend_bucket_count: int = Field(
        default=6,
        ge=1,
        le=60,
        description="How many months the trend chart shows"
    )

    # Validation thresholds
    max_amount: float = Field(
        default=100000000.0,
        description="Largest plausible amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        description="How many days in the future a transaction date can be"
    )

    # Local price simulation
    price_fallback_spread: float = Field(
        default=0.05,
        ge=0.0,
        le=0.5,
        description="Random spread used when no AI price source is configured"
    )
    price_retry_spread: float = Field(
        default=0.03,
        ge=0.0,
        le=0.5,
        description="Random spread used when the AI price source fails"
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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def identity(self) -> IdentitySettings:
        return IdentitySettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        gemini = settings.gemini
        results["gemini"] = gemini.is_configured
        if not gemini.is_configured:
            results["gemini_error"] = "GEMINI_API_KEY is not set (local fallbacks in use)"
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.identity
        results["identity"] = True
    except Exception as e:
        results["identity"] = False
        results["identity_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
