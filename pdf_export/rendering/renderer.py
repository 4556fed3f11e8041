"""Single-page PDF renderer.

Drives one page of a live :class:`BrowserSession` through
load -> print -> capture. The page is always closed; the session never is.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError

from pdf_export.errors import NavigationError, RenderError
from pdf_export.rendering.config import RenderConfig, WaitUntil, get_render_config
from pdf_export.rendering.models import (
    PDF_SIGNATURE,
    AttemptState,
    PrintOptions,
    RenderedPage,
    Viewport,
)

if TYPE_CHECKING:
    from playwright.async_api import Page

    from pdf_export.browser.session import BrowserSession

logger = logging.getLogger(__name__)

StageCallback = Callable[[AttemptState], None]
Loader = Callable[["Page", WaitUntil, int], Awaitable[None]]

FONTS_READY_SCRIPT = "() => document.fonts.ready.then(() => true)"
UNTITLED = "Untitled"


def resolve_print_options(
    options: PrintOptions | None = None,
    config: RenderConfig | None = None,
) -> dict[str, Any]:
    """Merge explicitly set caller fields over the safe defaults.

    Returns keyword arguments for Playwright's ``page.pdf``. An explicit
    ``format`` always wins over ``prefer_css_page_size``.
    """
    cfg = config or get_render_config()
    margin = cfg.default_margin
    resolved: dict[str, Any] = {
        "format": cfg.default_format,
        "landscape": False,
        "print_background": cfg.default_print_background,
        "prefer_css_page_size": cfg.default_prefer_css_page_size,
        "margin": {"top": margin, "right": margin, "bottom": margin, "left": margin},
        "display_header_footer": False,
    }
    if options is None:
        return resolved

    explicit = options.model_fields_set
    for name in sorted(explicit):
        value = getattr(options, name)
        if value is None:
            continue
        if name == "margin":
            resolved["margin"] = value.model_dump()
        else:
            resolved[name] = value

    if "format" in explicit and options.format and resolved["prefer_css_page_size"]:
        logger.debug(
            "Explicit format %r overrides prefer_css_page_size", options.format
        )
        resolved["prefer_css_page_size"] = False

    return resolved


def clamp_settle_ms(requested_ms: int, remaining_navigation_ms: int) -> int:
    """Settle time after load, limited to what is left of the navigation budget.

    The settle wait counts against navigation, so one attempt never runs
    longer than launch + navigation + render.
    """
    return max(0, min(requested_ms, remaining_navigation_ms))


def get_optimized_print_options() -> PrintOptions:
    """Memory-lean print preset for large documents."""
    return PrintOptions(
        print_background=True,
        prefer_css_page_size=True,
        display_header_footer=False,
    )


class PDFRenderer:
    """Renders HTML strings or URLs to PDF on a caller-owned session."""

    def __init__(self, config: RenderConfig | None = None):
        """Initialize the renderer.

        Args:
            config: Optional RenderConfig. Uses global config if not provided.
        """
        self.config = config or get_render_config()

    async def render_from_html(
        self,
        session: BrowserSession,
        html: str,
        print_options: PrintOptions | None = None,
        navigation_budget_ms: int | None = None,
        *,
        render_budget_ms: int | None = None,
        wait_until: WaitUntil | None = None,
        extra_wait_ms: int | None = None,
        viewport: Viewport | None = None,
        on_stage: StageCallback | None = None,
    ) -> RenderedPage:
        """Set ``html`` as page content and print it.

        Raises:
            NavigationError: Content did not reach load readiness within budget.
            RenderError: PDF emission failed after a successful load.
        """

        async def load(page: Page, state: WaitUntil, budget_ms: int) -> None:
            await page.set_content(html, wait_until=state, timeout=budget_ms)

        return await self._render(
            session,
            load,
            "HTML content",
            print_options,
            navigation_budget_ms,
            render_budget_ms=render_budget_ms,
            wait_until=wait_until,
            extra_wait_ms=extra_wait_ms,
            viewport=viewport,
            on_stage=on_stage,
        )

    async def render_from_url(
        self,
        session: BrowserSession,
        url: str,
        print_options: PrintOptions | None = None,
        navigation_budget_ms: int | None = None,
        *,
        render_budget_ms: int | None = None,
        wait_until: WaitUntil | None = None,
        extra_wait_ms: int | None = None,
        viewport: Viewport | None = None,
        on_stage: StageCallback | None = None,
    ) -> RenderedPage:
        """Navigate to ``url`` and print it.

        Raises:
            NavigationError: Navigation did not reach load readiness within budget.
            RenderError: PDF emission failed after a successful load.
        """

        async def load(page: Page, state: WaitUntil, budget_ms: int) -> None:
            await page.goto(url, wait_until=state, timeout=budget_ms)

        return await self._render(
            session,
            load,
            url,
            print_options,
            navigation_budget_ms,
            render_budget_ms=render_budget_ms,
            wait_until=wait_until,
            extra_wait_ms=extra_wait_ms,
            viewport=viewport,
            on_stage=on_stage,
        )

    async def _render(
        self,
        session: BrowserSession,
        load: Loader,
        source_label: str,
        print_options: PrintOptions | None,
        navigation_budget_ms: int | None,
        *,
        render_budget_ms: int | None,
        wait_until: WaitUntil | None,
        extra_wait_ms: int | None,
        viewport: Viewport | None,
        on_stage: StageCallback | None,
    ) -> RenderedPage:
        nav_ms = navigation_budget_ms or session.profile.navigation_budget()
        render_ms = render_budget_ms or session.profile.render_budget()
        state = wait_until or self.config.wait_until
        settle_ms = self.config.extra_wait_ms if extra_wait_ms is None else extra_wait_ms
        pdf_kwargs = resolve_print_options(print_options, self.config)

        def notify(stage: AttemptState) -> None:
            if on_stage is not None:
                on_stage(stage)

        page_kwargs: dict[str, Any] = {}
        if viewport is not None:
            page_kwargs["viewport"] = viewport.size()
            page_kwargs["device_scale_factor"] = viewport.device_scale_factor

        try:
            async with session.page(**page_kwargs) as page:
                notify(AttemptState.PAGE_OPEN)

                notify(AttemptState.CONTENT_LOADING)
                logger.info("Loading %s (wait_until=%s, budget=%dms)", source_label, state, nav_ms)
                loop = asyncio.get_running_loop()
                load_started = loop.time()
                try:
                    await asyncio.wait_for(
                        self._load(page, load, state, nav_ms),
                        timeout=nav_ms / 1000,
                    )
                except (TimeoutError, PlaywrightError) as e:
                    raise NavigationError(
                        f"{source_label} did not reach '{state}' within {nav_ms}ms: {e}", e
                    ) from e

                if settle_ms > 0:
                    used_ms = int((loop.time() - load_started) * 1000)
                    wait_ms = clamp_settle_ms(settle_ms, nav_ms - used_ms)
                    if wait_ms < settle_ms:
                        logger.warning(
                            "Extra wait of %dms exceeds the navigation budget, waiting %dms",
                            settle_ms,
                            wait_ms,
                        )
                    if wait_ms > 0:
                        logger.debug("Extra wait: %dms", wait_ms)
                        await asyncio.sleep(wait_ms / 1000)

                notify(AttemptState.RENDERING)
                try:
                    pdf_bytes = await asyncio.wait_for(
                        page.pdf(**pdf_kwargs), timeout=render_ms / 1000
                    )
                except (TimeoutError, PlaywrightError) as e:
                    raise RenderError(f"PDF emission failed after load: {e}", e) from e

                if not pdf_bytes or not pdf_bytes.startswith(PDF_SIGNATURE):
                    raise RenderError("Browser returned an empty or malformed PDF")

                page_title = await self._read_title(page)
        except PlaywrightError as e:
            # Only page creation reaches here; later stages raise classified errors.
            raise NavigationError(f"Failed to open a page for {source_label}: {e}", e) from e

        logger.info("PDF generated: %.2f KB", len(pdf_bytes) / 1024)
        return RenderedPage(pdf_bytes=pdf_bytes, page_title=page_title)

    async def _load(
        self,
        page: Page,
        load: Loader,
        state: WaitUntil,
        budget_ms: int,
    ) -> None:
        await load(page, state, budget_ms)
        if self.config.wait_for_fonts:
            await page.evaluate(FONTS_READY_SCRIPT)

    async def _read_title(self, page: Page) -> str:
        try:
            title = await page.title()
        except PlaywrightError as e:
            logger.debug("Could not read page title: %s", e)
            return UNTITLED
        return title or UNTITLED
