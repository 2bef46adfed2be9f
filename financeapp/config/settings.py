"""
Configuration Management for FinanceApp

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The presence or absence of hosted-backend credentials is the single switch
between hosted mode and local (demo) mode, so every optional service is
declared with optional fields and an `is_configured` check instead of
failing at import time.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Hosted backend (Google Sheets) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: Optional[str] = Field(
        default=None,
        description="ID of the spreadsheet holding the finance tables"
    )

    # One worksheet per entity table
    transactions_sheet_name: str = Field(default="transactions")
    categories_sheet_name: str = Field(default="categories")
    budgets_sheet_name: str = Field(default="budgets")
    accounts_sheet_name: str = Field(default="accounts")
    goals_sheet_name: str = Field(default="goals")
    profiles_sheet_name: str = Field(default="profiles")

    @field_validator('credentials_path', 'spreadsheet_id')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty environment values as missing."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.credentials_path and self.spreadsheet_id)


class CloudinarySettings(BaseSettings):
    """Cloudinary image hosting configuration (avatar uploads)."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    cloud_name: Optional[str] = Field(default=None, description="Cloudinary cloud name")
    api_key: Optional[str] = Field(default=None, description="Cloudinary API key")
    api_secret: Optional[str] = Field(default=None, description="Cloudinary API secret")
    folder: str = Field(
        default="financeapp/avatars",
        description="Folder uploaded avatars are stored under"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)


class EmailSettings(BaseSettings):
    """Serverless e-mail function configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    function_url: Optional[str] = Field(
        default=None,
        description="URL of the send-email function endpoint"
    )
    auth_token: Optional[str] = Field(
        default=None,
        description="Bearer token sent to the e-mail function"
    )
    sender_name: str = Field(
        default="El equipo de FinanceApp",
        description="Signature used in outgoing e-mails"
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="HTTP timeout for the e-mail function"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.function_url)


class LocalStorageSettings(BaseSettings):
    """Local key-value store used in demo mode and for local-only flags."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    path: Path = Field(
        default=Path(".financeapp") / "local_storage.json",
        description="JSON file backing the local key-value store"
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
        description="Enable debug mode (console log rendering)"
    )

    default_currency: str = Field(
        default="MXN",
        min_length=3,
        max_length=3,
        description="Currency assigned to new profiles"
    )

    # Budgets
    budget_warning_threshold: float = Field(
        default=80.0,
        ge=0.0,
        le=100.0,
        description="Percentage of a budget above which a warning is shown"
    )

    # Avatar upload limits
    max_avatar_size_mb: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum avatar upload size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp,gif",
        description="Comma-separated list of supported image formats"
    )
    avatar_size_px: int = Field(
        default=256,
        ge=32,
        le=1024,
        description="Avatars are resized to fit in a square of this size"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_avatar_size_bytes(self) -> int:
        """Get max avatar size in bytes."""
        return self.max_avatar_size_mb * 1024 * 1024


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

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()

    @property
    def email(self) -> EmailSettings:
        return EmailSettings()

    @property
    def local_storage(self) -> LocalStorageSettings:
        return LocalStorageSettings()

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
    Report which services are configured.

    Returns a dict of {service_name: is_configured}, with an
    `<service>_error` entry when a section fails validation.
    Useful for the settings page and startup checks.
    """
    results = {}
    settings = get_settings()

    sections = {
        "google_sheets": lambda: settings.google_sheets.is_configured,
        "cloudinary": lambda: settings.cloudinary.is_configured,
        "email": lambda: settings.email.is_configured,
        "app": lambda: settings.app is not None,
    }

    for name, check in sections.items():
        try:
            results[name] = bool(check())
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
