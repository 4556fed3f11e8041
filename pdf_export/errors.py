"""Error taxonomy for the PDF export pipeline.

Transient errors (:class:`TransientRenderError` subclasses) are caught and
retried by the retry controller. :class:`InvalidInputError` and
:class:`RenderFailedError` reach the caller directly.
"""

from __future__ import annotations


class PDFExportError(Exception):
    """Base exception for every classified pipeline failure."""

    retryable: bool = False

    def __init__(self, message: str, original_error: BaseException | None = None):
        super().__init__(message)
        self.original_error = original_error


class InvalidInputError(PDFExportError):
    """Raised when a render request is malformed (e.g. both or neither of url/html)."""


class TransientRenderError(PDFExportError):
    """Failure plausibly caused by temporary resource contention."""

    retryable = True


class BrowserLaunchError(TransientRenderError):
    """Raised when the browser process does not reach READY within the launch budget."""


class NavigationError(TransientRenderError):
    """Raised when content or a URL does not reach load-readiness within budget."""


class RenderError(TransientRenderError):
    """Raised when PDF emission fails after a successful load."""


class RenderFailedError(PDFExportError):
    """Raised when the retry budget or the wall-clock ceiling is exhausted."""

    def __init__(
        self,
        attempts: int,
        duration_ms: int,
        last_error: BaseException | None = None,
        reason: str | None = None,
    ):
        detail = str(last_error) if last_error is not None else "Unknown error"
        message = f"PDF rendering failed after {attempts} attempts ({duration_ms}ms)"
        if reason:
            message = f"{message}, {reason}"
        super().__init__(f"{message}: {detail}", last_error)
        self.attempts = attempts
        self.duration_ms = duration_ms
        self.last_error = last_error
