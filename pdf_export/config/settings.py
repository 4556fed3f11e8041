"""Configuration settings for pdf-export."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Pipeline tuning lives in the feature configs
    (:class:`pdf_export.browser.config.BrowserConfig` and
    :class:`pdf_export.rendering.config.RenderConfig`); this class only holds
    what the command line entry point needs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    output_dir: Path = Field(
        default=Path("./artifacts"),
        description="Directory the CLI writes rendered PDFs into",
    )
    output_filename: str = Field(
        default="export.pdf",
        description="Default file name for CLI output when -o is not given",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("output_filename")
    @classmethod
    def validate_output_filename(cls, v: str) -> str:
        """Require a bare ``.pdf`` file name."""
        value = v.strip()
        if not value or "/" in value or "\\" in value:
            raise ValueError("output_filename must be a bare file name")
        if not value.lower().endswith(".pdf"):
            value = f"{value}.pdf"
        return value

    def default_output_path(self) -> Path:
        """Get the default path for CLI output."""
        return self.output_dir / self.output_filename


# Singleton instance for easy import
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (useful for testing)."""
    global _settings
    _settings = None
