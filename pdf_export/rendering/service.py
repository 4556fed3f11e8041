"""Public entry points of the PDF export pipeline.

Each call computes (or receives) one EnvironmentProfile and passes it
explicitly to the retry controller; nothing is cached between calls.

Example:
    from pdf_export.rendering import render_pdf_from_html

    result = await render_pdf_from_html("<h1>Hello</h1>")
    print(result.metadata.byte_size, result.metadata.retries)
"""

from __future__ import annotations

import logging
from typing import Any

from pdf_export.browser.config import BrowserConfig, load_browser_config
from pdf_export.browser.environment import EnvironmentProfile
from pdf_export.browser.session import BrowserSession
from pdf_export.rendering.config import RenderConfig, get_render_config
from pdf_export.rendering.models import PrintOptions, RenderRequest, RenderResult
from pdf_export.rendering.retry import RetryController

logger = logging.getLogger(__name__)


def detect_profile(
    browser_config: BrowserConfig | None = None,
    *,
    force_constrained: bool | None = None,
) -> EnvironmentProfile:
    """Compute the profile for this invocation from the environment."""
    return EnvironmentProfile.detect(
        force_constrained=force_constrained,
        config=browser_config,
    )


async def render_pdf(
    request: RenderRequest,
    *,
    profile: EnvironmentProfile | None = None,
    config: RenderConfig | None = None,
    browser_config: BrowserConfig | None = None,
) -> RenderResult:
    """Render an HTML string or URL to PDF with classified retries.

    Raises:
        InvalidInputError: Both or neither of html/url set.
        RenderFailedError: All attempts failed or time ran out.
    """
    profile = profile or detect_profile(browser_config)
    logger.debug(
        "Rendering %s source with %s profile",
        request.source_kind,
        "constrained" if profile.is_constrained else "local",
    )
    controller = RetryController(
        profile,
        config=config,
        browser_config=browser_config,
    )
    return await controller.render(request)


def _convenience_request(
    config: RenderConfig,
    print_options: PrintOptions | None,
    overrides: dict[str, Any],
    **source: str,
) -> RenderRequest:
    fields: dict[str, Any] = {
        "enable_retry": True,
        "max_retries": config.default_max_retries,
        **overrides,
        **source,
    }
    if print_options is not None:
        fields["print_options"] = print_options
    return RenderRequest(**fields)


async def render_pdf_from_html(
    html: str,
    print_options: PrintOptions | None = None,
    *,
    profile: EnvironmentProfile | None = None,
    config: RenderConfig | None = None,
    browser_config: BrowserConfig | None = None,
    **overrides: Any,
) -> RenderResult:
    """Render an HTML string with retry enabled by default."""
    cfg = config or get_render_config()
    request = _convenience_request(cfg, print_options, overrides, html=html)
    return await render_pdf(
        request, profile=profile, config=cfg, browser_config=browser_config
    )


async def render_pdf_from_url(
    url: str,
    print_options: PrintOptions | None = None,
    *,
    profile: EnvironmentProfile | None = None,
    config: RenderConfig | None = None,
    browser_config: BrowserConfig | None = None,
    **overrides: Any,
) -> RenderResult:
    """Render a navigable URL with retry enabled by default."""
    cfg = config or get_render_config()
    request = _convenience_request(cfg, print_options, overrides, url=url)
    return await render_pdf(
        request, profile=profile, config=cfg, browser_config=browser_config
    )


async def get_browser(
    session: BrowserSession | None = None,
    *,
    profile: EnvironmentProfile | None = None,
    browser_config: BrowserConfig | None = None,
) -> BrowserSession:
    """Return a READY session for diagnostics or warm-up.

    Sessions are owned by the caller and never cached at module level, so
    "the same browser within one invocation" means passing the session back
    in: ``get_browser(session)`` re-acquires it and returns the same process
    without a second launch (``session.launch_count`` stays 1).

    Calling ``get_browser()`` twice without a session creates two independent
    sessions, each with its own browser process. Every session returned here
    must be closed with ``await session.release()``; an unreleased session
    keeps its Chromium process alive.

    Example:
        session = await get_browser()
        try:
            session = await get_browser(session)  # no relaunch
        finally:
            await session.release()
    """
    if session is None:
        cfg = load_browser_config(browser_config)
        session = BrowserSession(profile or detect_profile(cfg), config=cfg)
    await session.acquire()
    return session
