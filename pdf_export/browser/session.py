"""Headless Chromium session owned by a single render invocation.

A session launches at most one browser process. It is never pooled or
shared between invocations: the retry controller creates a fresh session per
attempt and releases it before the attempt returns.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from pdf_export.browser.config import BrowserConfig, load_browser_config
from pdf_export.browser.environment import EnvironmentProfile
from pdf_export.errors import BrowserLaunchError

if TYPE_CHECKING:
    from playwright.async_api import Browser, Page, Playwright

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle of a browser session."""

    STARTING = "starting"
    READY = "ready"
    CLOSED = "closed"


def resolve_executable_path(
    config: BrowserConfig, environ: Mapping[str, str] | None = None
) -> str | None:
    """Pick the Chromium binary for this host.

    Order: BROWSER_CHROMIUM_EXECUTABLE_PATH, then CHROME_PATH, then
    Playwright's bundled build (``None``).

    Raises:
        BrowserLaunchError: If an explicitly configured binary does not exist.
    """
    env = os.environ if environ is None else environ

    candidate: Path | None = config.chromium_executable_path
    if candidate is None and env.get("CHROME_PATH"):
        candidate = Path(env["CHROME_PATH"])

    if candidate is None:
        return None

    if not candidate.exists():
        raise BrowserLaunchError(
            f"Chromium executable not found at: {candidate}. "
            "Set BROWSER_CHROMIUM_EXECUTABLE_PATH (or CHROME_PATH) to an installed "
            "binary, or unset it to use Playwright's bundled Chromium."
        )
    return str(candidate)


class BrowserSession:
    """One headless browser process for one invocation.

    ``acquire()`` is idempotent: while the session is READY it returns the
    same handle, and concurrent callers wait on the same launch instead of
    starting a second process.

    Example:
        async with BrowserSession(profile) as browser:
            print(browser.version)
    """

    def __init__(
        self,
        profile: EnvironmentProfile,
        *,
        config: BrowserConfig | None = None,
        playwright_factory: Callable[[], Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the session without launching anything.

        Args:
            profile: Budgets and launch args for this invocation.
            config: Optional BrowserConfig. Uses global config if not provided.
            playwright_factory: Callable returning an object with an async
                ``start()`` (defaults to ``async_playwright``).
            environ: Environment used for executable lookup. Defaults to os.environ.
        """
        self.profile = profile
        self.config = load_browser_config(config)
        self._playwright_factory = playwright_factory or async_playwright
        self._environ = environ

        self.created_at = datetime.now(UTC)
        self.state = SessionState.STARTING
        self.launch_count = 0
        self.open_page_count = 0

        self._driver: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def default_viewport(self) -> dict[str, int]:
        return {
            "width": self.config.viewport_width,
            "height": self.config.viewport_height,
        }

    @property
    def browser_version(self) -> str | None:
        if self._browser is None:
            return None
        return self._browser.version

    def launch_args(self) -> list[str]:
        """Profile args plus configured extras, without duplicates."""
        args = list(self.profile.recommended_launch_args)
        for arg in self.config.extra_launch_args:
            if arg not in args:
                args.append(arg)
        return args

    async def acquire(self) -> Browser:
        """Launch the browser if needed and return the live handle.

        Raises:
            BrowserLaunchError: If the process does not reach READY within
                the profile's launch budget, or the session was released.
        """
        async with self._lock:
            if self.state is SessionState.READY and self._browser is not None:
                return self._browser

            if self.state is SessionState.CLOSED:
                raise BrowserLaunchError(
                    "Browser session was already released; create a new session"
                )

            budget_ms = self.profile.browser_launch_budget()
            try:
                executable_path = resolve_executable_path(self.config, self._environ)
            except BrowserLaunchError:
                self.state = SessionState.CLOSED
                raise

            self.launch_count += 1
            logger.info(
                "Launching %s browser (budget=%dms, executable=%s)",
                "constrained" if self.profile.is_constrained else "local",
                budget_ms,
                executable_path or "bundled",
            )

            try:
                self._browser = await asyncio.wait_for(
                    self._launch(executable_path, budget_ms),
                    timeout=budget_ms / 1000,
                )
            except (TimeoutError, PlaywrightError, OSError) as e:
                await self._teardown()
                logger.error("Browser launch failed: %s", e)
                raise BrowserLaunchError(
                    f"Browser did not become ready within {budget_ms}ms: {e}", e
                ) from e

            self.state = SessionState.READY
            logger.info("Browser ready (version=%s)", self.browser_version)
            return self._browser

    async def _launch(self, executable_path: str | None, budget_ms: int) -> Browser:
        self._driver = await self._playwright_factory().start()
        return await self._driver.chromium.launch(
            headless=True,
            args=self.launch_args(),
            executable_path=executable_path,
            timeout=budget_ms,
        )

    async def release(self) -> None:
        """Terminate the browser process. Safe to call more than once."""
        async with self._lock:
            if self.state is SessionState.CLOSED:
                return
            await self._teardown()

    async def _teardown(self) -> None:
        browser, driver = self._browser, self._driver
        self._browser = None
        self._driver = None
        self.state = SessionState.CLOSED

        # Close failures must not mask the error that triggered teardown.
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning("Failed to close browser: %s", e)
        if driver is not None:
            try:
                await driver.stop()
            except Exception as e:
                logger.warning("Failed to stop Playwright driver: %s", e)

    @asynccontextmanager
    async def page(
        self,
        viewport: Mapping[str, int] | None = None,
        device_scale_factor: float | None = None,
    ) -> AsyncIterator[Page]:
        """Open one page on this session and close it on every exit path.

        ``viewport`` and ``device_scale_factor`` override the configured
        defaults for this page only.

        Raises:
            RuntimeError: If a page is already open on this session.
        """
        if self.open_page_count:
            raise RuntimeError("BrowserSession allows one open page at a time")

        self.open_page_count += 1
        try:
            browser = await self.acquire()
            page = await browser.new_page(
                viewport=dict(viewport or self.default_viewport),
                device_scale_factor=device_scale_factor or self.config.device_scale_factor,
            )
        except BaseException:
            self.open_page_count -= 1
            raise

        try:
            yield page
        finally:
            self.open_page_count -= 1
            try:
                await page.close()
            except Exception as e:
                logger.warning("Failed to close page: %s", e)

    async def __aenter__(self) -> Browser:
        return await self.acquire()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()
