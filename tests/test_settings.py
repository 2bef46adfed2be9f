"""Tests for environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from financeapp.config import (
    AppSettings,
    CloudinarySettings,
    EmailSettings,
    GoogleSheetsSettings,
    LocalStorageSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "CLOUDINARY_CLOUD_NAME",
        "CLOUDINARY_API_KEY",
        "CLOUDINARY_API_SECRET",
        "EMAIL_FUNCTION_URL",
        "EMAIL_AUTH_TOKEN",
        "LOCAL_STORAGE_PATH",
        "BUDGET_WARNING_THRESHOLD",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


class TestDefaults:
    """Without configuration the app runs in local mode."""

    def test_nothing_configured(self, clean_env):
        assert not GoogleSheetsSettings(_env_file=None).is_configured
        assert not CloudinarySettings(_env_file=None).is_configured
        assert not EmailSettings(_env_file=None).is_configured

    def test_app_defaults(self, clean_env):
        app = AppSettings(_env_file=None)
        assert app.default_currency == "MXN"
        assert app.budget_warning_threshold == 80.0
        assert app.max_avatar_size_bytes == 5 * 1024 * 1024
        assert "png" in app.supported_formats_list

    def test_local_storage_path(self, clean_env):
        assert LocalStorageSettings(_env_file=None).path == Path(".financeapp") / "local_storage.json"


class TestEnvironment:
    """Tests for reading values from the environment."""

    def test_hosted_backend_from_env(self, clean_env):
        clean_env.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", "/secrets/sa.json")
        clean_env.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")
        settings = GoogleSheetsSettings(_env_file=None)
        assert settings.is_configured
        assert settings.spreadsheet_id == "sheet-123"

    def test_blank_values_count_as_missing(self, clean_env):
        clean_env.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", "   ")
        clean_env.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")
        settings = GoogleSheetsSettings(_env_file=None)
        assert settings.credentials_path is None
        assert not settings.is_configured

    def test_threshold_bounds(self, clean_env):
        clean_env.setenv("BUDGET_WARNING_THRESHOLD", "150")
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None)

    def test_validate_all_settings(self, clean_env):
        clean_env.setenv("EMAIL_FUNCTION_URL", "https://mail.example/send")
        results = validate_all_settings()
        assert results["email"] is True
        assert results["google_sheets"] is False
        assert results["app"] is True

    def test_validate_all_settings_reports_errors(self, clean_env):
        clean_env.setenv("BUDGET_WARNING_THRESHOLD", "not a number")
        results = validate_all_settings()
        assert results["app"] is False
        assert "app_error" in results
