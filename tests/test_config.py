"""Tests for configuration loading."""

import pytest

from cycle_budget.config import AppSettings, get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        settings = AppSettings()
        assert settings.storage_backend == "memory"
        assert settings.guest_prefix == "guest_"
        assert settings.danger_multiplier == 1.2
        assert settings.currency == "TRY"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "google_sheets")
        monkeypatch.setenv("DANGER_MULTIPLIER", "1.5")
        settings = AppSettings()
        assert settings.storage_backend == "google_sheets"
        assert settings.danger_multiplier == 1.5

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            AppSettings()

    def test_danger_multiplier_must_exceed_one(self):
        with pytest.raises(ValueError):
            AppSettings(danger_multiplier=1.0)


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_missing_gemini_key_reported(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        results = validate_all_settings()
        assert results["app"] is True
        assert results["gemini"] is False
        assert "gemini_error" in results

    def test_gemini_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        results = validate_all_settings()
        assert results["gemini"] is True
        assert get_settings().gemini.model_name == "gemini-2.0-flash"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
