"""Tests for Settings configuration class."""

from pathlib import Path

import pytest
from pydantic import ValidationError


class TestSettingsDefaults:
    """Test that Settings loads sensible defaults."""

    def test_settings_loads_with_defaults(self, monkeypatch):
        """Settings should load with default values when no env vars are set."""
        for var in ("OUTPUT_DIR", "OUTPUT_FILENAME", "LOG_LEVEL"):
            monkeypatch.delenv(var, raising=False)

        from pdf_export.config.settings import Settings

        settings = Settings(_env_file=None)

        assert settings.output_dir == Path("./artifacts")
        assert settings.output_filename == "export.pdf"
        assert settings.log_level == "INFO"
        assert settings.default_output_path() == Path("./artifacts/export.pdf")


class TestSettingsFromEnvironment:
    """Test that Settings reads from environment variables."""

    def test_settings_reads_output_dir_from_env(self, monkeypatch, tmp_path):
        """Settings should read OUTPUT_DIR from environment."""
        monkeypatch.setenv("OUTPUT_DIR", str(tmp_path))

        from pdf_export.config.settings import Settings

        settings = Settings(_env_file=None)
        assert settings.output_dir == tmp_path

    def test_settings_normalizes_log_level(self, monkeypatch):
        """LOG_LEVEL is case-insensitive."""
        monkeypatch.setenv("LOG_LEVEL", "debug")

        from pdf_export.config.settings import Settings

        assert Settings(_env_file=None).log_level == "DEBUG"

    def test_output_filename_gets_pdf_suffix(self, monkeypatch):
        """A bare name without .pdf gets the suffix appended."""
        monkeypatch.setenv("OUTPUT_FILENAME", "resume")

        from pdf_export.config.settings import Settings

        assert Settings(_env_file=None).output_filename == "resume.pdf"


class TestSettingsValidation:
    """Test that Settings validates values."""

    def test_invalid_log_level_rejected(self, monkeypatch):
        """Unknown log levels raise a validation error."""
        monkeypatch.setenv("LOG_LEVEL", "VERBOSE")

        from pdf_export.config.settings import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_output_filename_must_be_bare(self):
        """Paths are not accepted as file names."""
        from pdf_export.config.settings import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, output_filename="../escape.pdf")


class TestSettingsSingleton:
    """Test the settings singleton helpers."""

    def test_get_settings_is_cached(self):
        from pdf_export.config.settings import get_settings, reset_settings

        first = get_settings()
        assert get_settings() is first
        reset_settings()
        assert get_settings() is not first
