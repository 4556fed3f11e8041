"""Configuration settings for the rendering module.

Provides retry/backoff constants, load-readiness settings and the safe
print defaults. Settings can be overridden via environment variables
prefixed with RENDER_ (e.g. RENDER_DEFAULT_MAX_RETRIES=1).
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

WaitUntil = Literal["load", "domcontentloaded", "networkidle", "commit"]


class RenderConfig(BaseSettings):
    """Configuration for page rendering and retries."""

    model_config = SettingsConfigDict(
        env_prefix="RENDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Retry policy
    default_max_retries: Annotated[int, Field(ge=0)] = Field(
        default=2,
        description="Retries after the first attempt for the convenience wrappers",
    )
    retry_delay_ms: Annotated[int, Field(ge=0)] = Field(
        default=500,
        description="Delay before the first retry",
    )
    retry_backoff_multiplier: Annotated[float, Field(ge=1.0)] = Field(
        default=1.0,
        description="Growth factor per retry; 1.0 keeps the delay fixed",
    )
    max_retry_delay_ms: Annotated[int, Field(ge=0)] = Field(
        default=4_000,
        description="Upper bound for any single backoff delay",
    )

    # Load readiness
    wait_until: WaitUntil = Field(
        default="networkidle",
        description="Playwright load state that marks a page as ready to print",
    )
    wait_for_fonts: bool = Field(
        default=True,
        description="Also wait for document.fonts.ready before printing",
    )
    extra_wait_ms: Annotated[int, Field(ge=0)] = Field(
        default=0,
        description="Additional settle time after load readiness",
    )

    # Print defaults
    default_format: str = Field(default="A4", description="Paper format")
    default_print_background: bool = Field(default=True)
    default_prefer_css_page_size: bool = Field(default=False)
    default_margin: str = Field(
        default="0",
        description="CSS length applied to all four margins",
    )

    @field_validator("default_format", mode="before")
    @classmethod
    def normalize_format(cls, v: str) -> str:
        """Reject blank paper formats."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("default_format must be a non-empty string")
        return v.strip()


# Singleton instance
_render_config: RenderConfig | None = None


def get_render_config() -> RenderConfig:
    """Get the render configuration singleton."""
    global _render_config
    if _render_config is None:
        _render_config = RenderConfig()
    return _render_config


def reset_render_config() -> None:
    """Reset the configuration singleton (useful for testing)."""
    global _render_config
    _render_config = None
