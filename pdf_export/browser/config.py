"""Configuration settings for the browser layer.

Every timeout and resource budget used when launching Chromium is a named
setting here. Settings can be overridden via environment variables prefixed
with BROWSER_ (e.g. BROWSER_FORCE_CONSTRAINED=true).
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Annotated

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Flags are separated by whitespace, or by a comma that starts a new flag.
# Commas inside a value (--disable-features=A,B) are kept.
_ARG_SEPARATOR = re.compile(r"\s*,\s*(?=--)|\s+")


class BrowserConfig(BaseSettings):
    """Configuration for environment detection and browser launch."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        enable_decoding=False,
        extra="ignore",
    )

    force_constrained: bool = Field(
        default=False,
        description="Always use the constrained profile (for local testing of serverless budgets)",
    )

    # Constrained (serverless / container) budgets, in milliseconds
    constrained_launch_budget_ms: Annotated[int, Field(gt=0)] = Field(
        default=15_000,
        description="Browser launch budget on a constrained host",
    )
    constrained_navigation_budget_ms: Annotated[int, Field(gt=0)] = Field(
        default=20_000,
        description="Content load / navigation budget on a constrained host",
    )
    constrained_render_budget_ms: Annotated[int, Field(gt=0)] = Field(
        default=15_000,
        description="PDF emission budget on a constrained host",
    )
    constrained_wall_clock_ms: Annotated[int, Field(gt=0)] = Field(
        default=60_000,
        description="Overall wall-clock ceiling of one invocation on a constrained host",
    )

    # Unconstrained (local / long-running host) budgets, in milliseconds
    local_launch_budget_ms: Annotated[int, Field(gt=0)] = Field(
        default=30_000,
        description="Browser launch budget on an unconstrained host",
    )
    local_navigation_budget_ms: Annotated[int, Field(gt=0)] = Field(
        default=30_000,
        description="Content load / navigation budget on an unconstrained host",
    )
    local_render_budget_ms: Annotated[int, Field(gt=0)] = Field(
        default=30_000,
        description="PDF emission budget on an unconstrained host",
    )
    local_wall_clock_ms: Annotated[int, Field(gt=0)] = Field(
        default=120_000,
        description="Overall wall-clock ceiling of one invocation on an unconstrained host",
    )

    # Launch settings
    chromium_executable_path: Path | None = Field(
        default=None,
        description="Chromium/Chrome binary to launch; Playwright's bundled build when unset",
    )
    extra_launch_args: list[str] = Field(
        default_factory=list,
        description="Additional Chromium flags appended to the profile's recommended args",
    )

    # Reduced default viewport (A4 at 96 DPI)
    viewport_width: Annotated[int, Field(gt=0)] = Field(default=794)
    viewport_height: Annotated[int, Field(gt=0)] = Field(default=1123)
    device_scale_factor: Annotated[float, Field(gt=0)] = Field(default=1.0)

    @field_validator("extra_launch_args", mode="before")
    @classmethod
    def parse_extra_launch_args(cls, v: object) -> list[str]:
        """Accept a list, or a string of flags separated by whitespace or commas."""
        if v is None:
            return []
        if isinstance(v, str):
            return [item for item in _ARG_SEPARATOR.split(v.strip()) if item]
        return [str(item).strip() for item in v if str(item).strip()]  # type: ignore[union-attr]

    @field_validator("chromium_executable_path", mode="before")
    @classmethod
    def convert_to_path(cls, v: str | Path | None) -> Path | None:
        """Convert string paths to Path objects; treat blank as unset."""
        if isinstance(v, str):
            return Path(v) if v.strip() else None
        return v

    @model_validator(mode="after")
    def check_constrained_is_tighter(self) -> BrowserConfig:
        """The constrained launch budget must stay below the local one."""
        if self.constrained_launch_budget_ms >= self.local_launch_budget_ms:
            raise ValueError(
                "constrained_launch_budget_ms must be smaller than local_launch_budget_ms"
            )
        return self

    @model_validator(mode="after")
    def check_launch_fits_wall_clock(self) -> BrowserConfig:
        """Each ceiling must leave at least 2ms for navigation after launch."""
        for prefix in ("constrained", "local"):
            launch = getattr(self, f"{prefix}_launch_budget_ms")
            wall_clock = getattr(self, f"{prefix}_wall_clock_ms")
            if wall_clock - launch < 2:
                raise ValueError(
                    f"{prefix}_launch_budget_ms ({launch}) leaves no time for navigation "
                    f"within {prefix}_wall_clock_ms ({wall_clock})"
                )
        return self


# Singleton instance
_browser_config: BrowserConfig | None = None


def get_browser_config() -> BrowserConfig:
    """Get the browser configuration singleton."""
    global _browser_config
    if _browser_config is None:
        _browser_config = BrowserConfig()
    return _browser_config


def load_browser_config(config: BrowserConfig | None = None) -> BrowserConfig:
    """Return ``config``, or the global config with defaults on invalid settings.

    Unlike :func:`get_browser_config` this never raises: a malformed
    ``BROWSER_*`` variable is logged and the documented defaults are used.
    """
    if config is not None:
        return config
    try:
        return get_browser_config()
    except ValidationError as e:
        logger.warning("Invalid BROWSER_* settings, using defaults: %s", e)
        return BrowserConfig.model_construct()


def reset_browser_config() -> None:
    """Reset the configuration singleton (useful for testing)."""
    global _browser_config
    _browser_config = None
