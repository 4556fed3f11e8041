"""Pytest configuration and shared fixtures.

The fake Playwright driver below mirrors the small slice of
``playwright.async_api`` the pipeline uses (start/stop, chromium.launch,
new_page, set_content/goto, pdf, title, close) so unit tests run without a
browser installed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError

from pdf_export.browser.config import BrowserConfig, reset_browser_config
from pdf_export.browser.environment import EnvironmentProfile
from pdf_export.browser.session import BrowserSession
from pdf_export.config.settings import reset_settings
from pdf_export.rendering.config import RenderConfig, reset_render_config
from pdf_export.utils.logging import reset_logging

FAKE_PDF = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer << >>\n%%EOF\n"


@dataclass
class FakeDriverState:
    """Knobs and counters shared by every fake object of one test."""

    launch_failures: int = 0
    load_failures: int = 0
    pdf_failures: int = 0
    hang: str | None = None  # "launch", "load" or "pdf"
    title: str = "Fake Document"
    pdf_bytes: bytes = FAKE_PDF
    load_error: str = "net::ERR_CONNECTION_REFUSED"

    launches: int = 0
    stops: int = 0
    launch_kwargs: list[dict[str, Any]] = field(default_factory=list)
    browsers: list[FakeBrowser] = field(default_factory=list)
    pages: list[FakePage] = field(default_factory=list)

    @property
    def open_pages(self) -> int:
        return sum(1 for page in self.pages if not page.closed)


class FakePage:
    def __init__(self, state: FakeDriverState, **kwargs: Any) -> None:
        self._state = state
        self.new_page_kwargs = kwargs
        self.closed = False
        self.content: str | None = None
        self.url: str | None = None
        self.load_kwargs: dict[str, Any] = {}
        self.pdf_kwargs: dict[str, Any] | None = None
        self.evaluated: list[str] = []

    async def _load(self, **kwargs: Any) -> None:
        self.load_kwargs = kwargs
        if self._state.hang == "load":
            await asyncio.sleep(3600)
        if self._state.load_failures:
            self._state.load_failures -= 1
            raise PlaywrightError(self._state.load_error)

    async def set_content(self, html: str, **kwargs: Any) -> None:
        self.content = html
        await self._load(**kwargs)

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.url = url
        await self._load(**kwargs)

    async def evaluate(self, script: str) -> bool:
        self.evaluated.append(script)
        return True

    async def pdf(self, **kwargs: Any) -> bytes:
        self.pdf_kwargs = kwargs
        if self._state.hang == "pdf":
            await asyncio.sleep(3600)
        if self._state.pdf_failures:
            self._state.pdf_failures -= 1
            raise PlaywrightError("Target page, context or browser has been closed")
        return self._state.pdf_bytes

    async def title(self) -> str:
        return self._state.title

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    version = "121.0.6167.57"

    def __init__(self, state: FakeDriverState) -> None:
        self._state = state
        self.closed = False
        self.close_calls = 0

    async def new_page(self, **kwargs: Any) -> FakePage:
        page = FakePage(self._state, **kwargs)
        self._state.pages.append(page)
        return page

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class FakeChromium:
    def __init__(self, state: FakeDriverState) -> None:
        self._state = state

    async def launch(self, **kwargs: Any) -> FakeBrowser:
        self._state.launches += 1
        self._state.launch_kwargs.append(kwargs)
        if self._state.hang == "launch":
            await asyncio.sleep(3600)
        if self._state.launch_failures:
            self._state.launch_failures -= 1
            raise PlaywrightError("Browser closed: out of memory")
        browser = FakeBrowser(self._state)
        self._state.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self, state: FakeDriverState) -> None:
        self._state = state
        self.chromium = FakeChromium(state)

    async def stop(self) -> None:
        self._state.stops += 1


class FakePlaywrightFactory:
    """Stands in for ``async_playwright``: calling it returns an object with ``start()``."""

    def __init__(self, state: FakeDriverState) -> None:
        self._state = state

    def __call__(self) -> FakePlaywrightFactory:
        return self

    async def start(self) -> FakePlaywright:
        return FakePlaywright(self._state)


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Keep configuration singletons and the console handler from leaking between tests."""
    yield
    reset_settings()
    reset_browser_config()
    reset_render_config()
    reset_logging()


@pytest.fixture
def fake_driver() -> FakeDriverState:
    return FakeDriverState()


@pytest.fixture
def fake_factory(fake_driver) -> FakePlaywrightFactory:
    return FakePlaywrightFactory(fake_driver)


@pytest.fixture
def browser_config() -> BrowserConfig:
    return BrowserConfig(_env_file=None)


@pytest.fixture
def render_config() -> RenderConfig:
    return RenderConfig(_env_file=None)


@pytest.fixture
def fast_profile() -> EnvironmentProfile:
    """Small budgets so hang scenarios time out quickly."""
    return EnvironmentProfile(
        is_constrained=True,
        browser_launch_budget_ms=200,
        navigation_budget_ms=200,
        render_budget_ms=200,
        wall_clock_budget_ms=60_000,
        recommended_launch_args=("--disable-gpu", "--disable-dev-shm-usage"),
    )


@pytest.fixture
def make_session(fake_factory, fast_profile, browser_config):
    """Build BrowserSessions wired to the fake driver; keeps every one created."""
    created: list[BrowserSession] = []

    def _make(profile: EnvironmentProfile | None = None) -> BrowserSession:
        session = BrowserSession(
            profile or fast_profile,
            config=browser_config,
            playwright_factory=fake_factory,
            environ={},
        )
        created.append(session)
        return session

    _make.created = created  # type: ignore[attr-defined]
    return _make
