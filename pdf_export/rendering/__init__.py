"""HTML/URL to PDF rendering with classified retries.

This module provides functionality for:
- Resolving print options over safe defaults
- Driving one page through load, print and capture
- Retrying full attempts with fresh browser sessions

Main Entry Points:
    render_pdf / render_pdf_from_html / render_pdf_from_url / get_browser
"""

from pdf_export.rendering.config import RenderConfig, get_render_config
from pdf_export.rendering.models import (
    AttemptState,
    Margins,
    PrintOptions,
    RenderedPage,
    RenderMetadata,
    RenderRequest,
    RenderResult,
    Viewport,
)
from pdf_export.rendering.renderer import (
    PDFRenderer,
    get_optimized_print_options,
    resolve_print_options,
)
from pdf_export.rendering.retry import AttemptTracker, RetryController, RetryPolicy
from pdf_export.rendering.service import (
    detect_profile,
    get_browser,
    render_pdf,
    render_pdf_from_html,
    render_pdf_from_url,
)

__all__ = [
    # Entry points
    "render_pdf",
    "render_pdf_from_html",
    "render_pdf_from_url",
    "get_browser",
    "detect_profile",
    # Components
    "PDFRenderer",
    "RetryController",
    "RetryPolicy",
    "AttemptTracker",
    "resolve_print_options",
    "get_optimized_print_options",
    # Configuration
    "RenderConfig",
    "get_render_config",
    # Models
    "AttemptState",
    "Margins",
    "PrintOptions",
    "RenderRequest",
    "RenderResult",
    "RenderMetadata",
    "RenderedPage",
    "Viewport",
]
