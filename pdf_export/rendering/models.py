"""Data models for the rendering module.

Contains Pydantic models for:
- PrintOptions / Margins / Viewport: caller-supplied page settings
- RenderRequest: immutable input to one render call
- RenderResult / RenderMetadata: PDF bytes plus attempt metadata
- AttemptState: stages of a single render attempt
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from pdf_export.rendering.config import WaitUntil

PDF_SIGNATURE = b"%PDF-"


class AttemptState(str, Enum):
    """Stages of one render attempt."""

    IDLE = "idle"
    LAUNCHING_BROWSER = "launching_browser"
    PAGE_OPEN = "page_open"
    CONTENT_LOADING = "content_loading"
    RENDERING = "rendering"
    CLOSED = "closed"
    FAILED_TRANSIENT = "failed_transient"
    FAILED_TERMINAL = "failed_terminal"


class Margins(BaseModel):
    """Page margins as CSS lengths."""

    model_config = ConfigDict(frozen=True)

    top: str = "0"
    right: str = "0"
    bottom: str = "0"
    left: str = "0"


class Viewport(BaseModel):
    """Viewport used while laying out the page before printing."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    device_scale_factor: float | None = Field(
        default=None, gt=0, le=4.0, description="Pixel ratio; the configured default when unset"
    )

    def size(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


class PrintOptions(BaseModel):
    """Caller-supplied print settings.

    Only fields the caller sets explicitly override the defaults; see
    :func:`pdf_export.rendering.renderer.resolve_print_options`.
    """

    model_config = ConfigDict(frozen=True)

    format: str | None = Field(default=None, description="Paper format, e.g. A4 or Letter")
    landscape: bool = False
    print_background: bool = True
    prefer_css_page_size: bool = False
    margin: Margins | None = None
    display_header_footer: bool = False
    scale: float | None = Field(default=None, gt=0.1, le=2.0)


class RenderRequest(BaseModel):
    """One HTML or URL source plus print settings.

    Exactly one of ``html`` / ``url`` must be set; the retry controller
    enforces this before any attempt is made.
    """

    model_config = ConfigDict(frozen=True)

    html: str | None = None
    url: str | None = None
    print_options: PrintOptions = Field(default_factory=PrintOptions)
    timeout_ms: int | None = Field(
        default=None, gt=0, description="Load budget override, capped by the profile"
    )
    enable_retry: bool = True
    max_retries: int = Field(default=2, ge=0)

    viewport: Viewport | None = None
    wait_until: WaitUntil | None = None
    extra_wait_ms: int | None = Field(default=None, ge=0)

    @property
    def source_kind(self) -> str:
        return "html" if self.html else "url"


class RenderMetadata(BaseModel):
    """Metadata describing a successful render."""

    model_config = ConfigDict(frozen=True)

    duration_ms: int
    retries: int = Field(..., ge=0, description="Attempts consumed beyond the first")
    attempts: int = Field(..., ge=1)
    page_title: str
    byte_size: int
    memory_used_bytes: int | None = None


class RenderResult(BaseModel):
    """PDF bytes plus metadata, returned unchanged to the caller."""

    model_config = ConfigDict(frozen=True)

    pdf_bytes: bytes
    metadata: RenderMetadata


@dataclass(frozen=True)
class RenderedPage:
    """Output of one page pass through load, print and capture."""

    pdf_bytes: bytes
    page_title: str
