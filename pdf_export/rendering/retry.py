"""Bounded, classified retries around full render attempts.

Each attempt walks an explicit state machine:

    IDLE -> LAUNCHING_BROWSER -> PAGE_OPEN -> CONTENT_LOADING -> RENDERING -> CLOSED

Any non-initial state may fall to FAILED_TRANSIENT (fresh IDLE attempt after
backoff, budget permitting) or FAILED_TERMINAL. CLOSED and FAILED_TERMINAL
end the call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import psutil

from pdf_export.browser.config import BrowserConfig
from pdf_export.browser.environment import EnvironmentProfile
from pdf_export.browser.session import BrowserSession
from pdf_export.errors import InvalidInputError, RenderFailedError, TransientRenderError
from pdf_export.rendering.config import RenderConfig, get_render_config
from pdf_export.rendering.models import (
    AttemptState,
    RenderedPage,
    RenderMetadata,
    RenderRequest,
    RenderResult,
)
from pdf_export.rendering.renderer import PDFRenderer

logger = logging.getLogger(__name__)

_FAILURES = frozenset({AttemptState.FAILED_TRANSIENT, AttemptState.FAILED_TERMINAL})

TRANSITIONS: dict[AttemptState, frozenset[AttemptState]] = {
    AttemptState.IDLE: frozenset({AttemptState.LAUNCHING_BROWSER}),
    AttemptState.LAUNCHING_BROWSER: frozenset({AttemptState.PAGE_OPEN}) | _FAILURES,
    AttemptState.PAGE_OPEN: frozenset({AttemptState.CONTENT_LOADING}) | _FAILURES,
    AttemptState.CONTENT_LOADING: frozenset({AttemptState.RENDERING}) | _FAILURES,
    AttemptState.RENDERING: frozenset({AttemptState.CLOSED}) | _FAILURES,
    AttemptState.FAILED_TRANSIENT: frozenset(
        {AttemptState.IDLE, AttemptState.FAILED_TERMINAL}
    ),
    AttemptState.CLOSED: frozenset(),
    AttemptState.FAILED_TERMINAL: frozenset(),
}

TERMINAL_STATES = frozenset({AttemptState.CLOSED, AttemptState.FAILED_TERMINAL})


class AttemptTracker:
    """Records state transitions across the attempts of one render call."""

    def __init__(self) -> None:
        self.state = AttemptState.IDLE
        self.history: list[AttemptState] = [AttemptState.IDLE]

    def can_advance(self, new_state: AttemptState) -> bool:
        return new_state in TRANSITIONS[self.state]

    def advance(self, new_state: AttemptState) -> None:
        """Move to ``new_state``.

        Raises:
            RuntimeError: If the transition is not allowed.
        """
        if not self.can_advance(new_state):
            raise RuntimeError(
                f"Illegal attempt transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
        self.history.append(new_state)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff between attempts. A multiplier of 1.0 gives a fixed delay."""

    delay_ms: int = 500
    multiplier: float = 1.0
    max_delay_ms: int = 4_000

    @classmethod
    def from_config(cls, config: RenderConfig) -> RetryPolicy:
        return cls(
            delay_ms=config.retry_delay_ms,
            multiplier=config.retry_backoff_multiplier,
            max_delay_ms=config.max_retry_delay_ms,
        )

    def delay_for(self, retry_number: int) -> int:
        """Delay in ms before retry number ``retry_number`` (1-based)."""
        delay = self.delay_ms * self.multiplier ** max(retry_number - 1, 0)
        return int(min(delay, self.max_delay_ms))


def validate_request(request: RenderRequest) -> None:
    """Enforce that exactly one of html/url is set.

    Raises:
        InvalidInputError: If both or neither source is provided.
    """
    has_html = bool(request.html)
    has_url = bool(request.url and request.url.strip())
    if has_html and has_url:
        raise InvalidInputError("Cannot provide both 'html' and 'url'")
    if not has_html and not has_url:
        raise InvalidInputError("Either 'html' or 'url' must be provided")


def _current_memory_bytes() -> int | None:
    try:
        return psutil.Process().memory_info().rss
    except psutil.Error:
        return None


class RetryController:
    """Runs render attempts with fresh sessions until success or exhaustion."""

    def __init__(
        self,
        profile: EnvironmentProfile,
        *,
        config: RenderConfig | None = None,
        browser_config: BrowserConfig | None = None,
        policy: RetryPolicy | None = None,
        session_factory: Callable[[EnvironmentProfile], BrowserSession] | None = None,
        renderer: PDFRenderer | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the controller.

        Args:
            profile: Budgets for this invocation, computed once by the caller.
            config: Optional RenderConfig. Uses global config if not provided.
            browser_config: Passed to sessions built by the default factory.
            policy: Backoff policy. Derived from ``config`` if not provided.
            session_factory: Builds one fresh BrowserSession per attempt.
            renderer: PDFRenderer to drive pages with.
            clock: Monotonic clock in seconds.
            sleep: Awaitable sleep in seconds, used for backoff.
        """
        self.profile = profile
        self.config = config or get_render_config()
        self.policy = policy or RetryPolicy.from_config(self.config)
        self.renderer = renderer or PDFRenderer(config=self.config)
        self._session_factory = session_factory or (
            lambda p: BrowserSession(p, config=browser_config)
        )
        self._clock = clock
        self._sleep = sleep

        self._attempts = 0
        self._tracker: AttemptTracker | None = None

    @property
    def attempts_made(self) -> int:
        return self._attempts

    @property
    def last_trace(self) -> list[AttemptState]:
        return list(self._tracker.history) if self._tracker else []

    def navigation_budget_for(self, request: RenderRequest) -> int:
        """Request override, capped at the profile's navigation budget."""
        budget = self.profile.navigation_budget()
        if request.timeout_ms is not None:
            return min(request.timeout_ms, budget)
        return budget

    def _elapsed_ms(self, started: float) -> int:
        return int((self._clock() - started) * 1000)

    async def render(self, request: RenderRequest) -> RenderResult:
        """Render ``request`` to PDF.

        Raises:
            InvalidInputError: Malformed request; no attempt is made.
            RenderFailedError: Retries or the wall-clock ceiling ran out.
        """
        self._attempts = 0
        self._tracker = None
        validate_request(request)

        tracker = AttemptTracker()
        self._tracker = tracker
        started = self._clock()
        max_attempts = request.max_retries + 1 if request.enable_retry else 1
        navigation_budget = self.navigation_budget_for(request)
        last_error: TransientRenderError | None = None

        while True:
            if self._attempts:
                delay_ms = self.policy.delay_for(self._attempts)
                elapsed = self._elapsed_ms(started)
                needed = elapsed + delay_ms + self.profile.attempt_budget()
                if needed > self.profile.wall_clock_budget_ms:
                    tracker.advance(AttemptState.FAILED_TERMINAL)
                    logger.error(
                        "Aborting after %d attempts: %dms needed, ceiling is %dms",
                        self._attempts,
                        needed,
                        self.profile.wall_clock_budget_ms,
                    )
                    raise RenderFailedError(
                        self._attempts,
                        elapsed,
                        last_error,
                        reason="not enough wall-clock time left for another attempt",
                    ) from last_error

                logger.info(
                    "Retrying in %dms (%d attempts remaining)",
                    delay_ms,
                    max_attempts - self._attempts,
                )
                await self._sleep(delay_ms / 1000)
                tracker.advance(AttemptState.IDLE)

            self._attempts += 1
            logger.info(
                "PDF render attempt %d/%d (%s source)",
                self._attempts,
                max_attempts,
                request.source_kind,
            )

            try:
                rendered = await self._attempt(request, tracker, navigation_budget)
            except TransientRenderError as e:
                last_error = e
                tracker.advance(AttemptState.FAILED_TRANSIENT)
                logger.warning("PDF render attempt %d failed: %s", self._attempts, e)
                if self._attempts >= max_attempts:
                    tracker.advance(AttemptState.FAILED_TERMINAL)
                    duration_ms = self._elapsed_ms(started)
                    logger.error(
                        "PDF rendering failed after %d attempts (%dms)",
                        self._attempts,
                        duration_ms,
                    )
                    raise RenderFailedError(self._attempts, duration_ms, e) from e
                continue
            except Exception:
                if tracker.can_advance(AttemptState.FAILED_TERMINAL):
                    tracker.advance(AttemptState.FAILED_TERMINAL)
                raise

            tracker.advance(AttemptState.CLOSED)
            return self._build_result(rendered, started)

    async def _attempt(
        self,
        request: RenderRequest,
        tracker: AttemptTracker,
        navigation_budget: int,
    ) -> RenderedPage:
        tracker.advance(AttemptState.LAUNCHING_BROWSER)
        session = self._session_factory(self.profile)
        try:
            await session.acquire()

            if request.html:
                render, source = self.renderer.render_from_html, request.html
            else:
                render, source = self.renderer.render_from_url, request.url

            return await render(
                session,
                source,
                request.print_options,
                navigation_budget,
                render_budget_ms=self.profile.render_budget(),
                wait_until=request.wait_until,
                extra_wait_ms=request.extra_wait_ms,
                viewport=request.viewport,
                on_stage=tracker.advance,
            )
        finally:
            await session.release()

    def _build_result(self, rendered: RenderedPage, started: float) -> RenderResult:
        metadata = RenderMetadata(
            duration_ms=self._elapsed_ms(started),
            retries=self._attempts - 1,
            attempts=self._attempts,
            page_title=rendered.page_title,
            byte_size=len(rendered.pdf_bytes),
            memory_used_bytes=_current_memory_bytes(),
        )
        return RenderResult(pdf_bytes=rendered.pdf_bytes, metadata=metadata)
