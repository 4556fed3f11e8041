"""pdf-export: HTML and URL to PDF through a scoped headless browser."""

from pdf_export.errors import (
    BrowserLaunchError,
    InvalidInputError,
    NavigationError,
    PDFExportError,
    RenderError,
    RenderFailedError,
    TransientRenderError,
)
from pdf_export.rendering.models import PrintOptions, RenderRequest, RenderResult
from pdf_export.rendering.service import (
    get_browser,
    render_pdf,
    render_pdf_from_html,
    render_pdf_from_url,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "render_pdf",
    "render_pdf_from_html",
    "render_pdf_from_url",
    "get_browser",
    "PrintOptions",
    "RenderRequest",
    "RenderResult",
    "PDFExportError",
    "InvalidInputError",
    "TransientRenderError",
    "BrowserLaunchError",
    "NavigationError",
    "RenderError",
    "RenderFailedError",
]
