"""Execution-environment detection and resource budgets.

The profile is computed once per invocation and handed to the session and
retry controller explicitly, so tests can build constrained and
unconstrained profiles without touching process-wide state.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from pdf_export.browser.config import BrowserConfig, load_browser_config

logger = logging.getLogger(__name__)

# Presence of any of these means a short-lived, memory/time-limited host.
CONSTRAINED_ENV_MARKERS: tuple[str, ...] = (
    "AWS_LAMBDA_FUNCTION_NAME",
    "AWS_EXECUTION_ENV",
    "LAMBDA_TASK_ROOT",
    "VERCEL",
    "K_SERVICE",
    "FUNCTION_TARGET",
    "FUNCTIONS_WORKER_RUNTIME",
)

# An unconstrained profile requires one of these to say so explicitly.
LOCAL_ENV_VARS: tuple[str, ...] = ("APP_ENV", "ENVIRONMENT", "NODE_ENV")
LOCAL_ENV_VALUES = frozenset({"development", "dev", "local"})

BASE_LAUNCH_ARGS: tuple[str, ...] = (
    "--disable-gpu",
    "--disable-dev-shm-usage",
    "--disable-extensions",
    "--disable-default-apps",
    "--no-first-run",
    "--hide-scrollbars",
    "--no-sandbox",
    "--disable-setuid-sandbox",
)

CONSTRAINED_LAUNCH_ARGS: tuple[str, ...] = (
    "--single-process",
    "--no-zygote",
    "--disable-accelerated-2d-canvas",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-features=IsolateOrigins,site-per-process",
    "--disable-site-isolation-trials",
    "--disable-infobars",
)


def is_constrained_environment(environ: Mapping[str, str] | None = None) -> bool:
    """Return True when the host looks like a constrained execution context.

    Ambiguous hosts (no serverless marker, but no explicit local marker
    either) are treated as constrained.
    """
    env = os.environ if environ is None else environ

    for marker in CONSTRAINED_ENV_MARKERS:
        if env.get(marker):
            return True

    for name in LOCAL_ENV_VARS:
        value = env.get(name)
        if value and value.strip().lower() in LOCAL_ENV_VALUES:
            return False

    return True


class EnvironmentProfile(BaseModel):
    """Immutable resource budgets for one invocation (all values in ms)."""

    model_config = ConfigDict(frozen=True)

    is_constrained: bool
    browser_launch_budget_ms: int
    navigation_budget_ms: int
    render_budget_ms: int
    wall_clock_budget_ms: int
    recommended_launch_args: tuple[str, ...]

    @classmethod
    def detect(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        force_constrained: bool | None = None,
        config: BrowserConfig | None = None,
    ) -> EnvironmentProfile:
        """Build the profile for the current (or given) environment.

        Never raises: unreadable settings fall back to the documented
        defaults in :class:`BrowserConfig`.

        Args:
            environ: Environment mapping to inspect. Defaults to os.environ.
            force_constrained: Override detection. ``None`` defers to
                ``config.force_constrained``.
            config: Optional BrowserConfig. Uses global config if not provided.
        """
        cfg = load_browser_config(config)
        force = cfg.force_constrained if force_constrained is None else force_constrained
        constrained = True if force else is_constrained_environment(environ)
        logger.debug(
            "Using %s profile%s",
            "constrained" if constrained else "unconstrained",
            " (forced)" if force else "",
        )
        return cls.for_constrained(constrained, config=cfg)

    @classmethod
    def for_constrained(
        cls, constrained: bool, *, config: BrowserConfig | None = None
    ) -> EnvironmentProfile:
        """Build a profile for an explicitly chosen host class."""
        cfg = load_browser_config(config)

        if constrained:
            launch = cfg.constrained_launch_budget_ms
            navigation = cfg.constrained_navigation_budget_ms
            render = cfg.constrained_render_budget_ms
            wall_clock = cfg.constrained_wall_clock_ms
            args = BASE_LAUNCH_ARGS + CONSTRAINED_LAUNCH_ARGS
        else:
            launch = cfg.local_launch_budget_ms
            navigation = cfg.local_navigation_budget_ms
            render = cfg.local_render_budget_ms
            wall_clock = cfg.local_wall_clock_ms
            args = BASE_LAUNCH_ARGS

        # Navigation must fit in what is left of the ceiling after launch.
        remaining = wall_clock - launch
        navigation = max(1, min(navigation, remaining - 1))

        return cls(
            is_constrained=constrained,
            browser_launch_budget_ms=launch,
            navigation_budget_ms=navigation,
            render_budget_ms=render,
            wall_clock_budget_ms=wall_clock,
            recommended_launch_args=args,
        )

    def browser_launch_budget(self) -> int:
        return self.browser_launch_budget_ms

    def navigation_budget(self) -> int:
        return self.navigation_budget_ms

    def render_budget(self) -> int:
        return self.render_budget_ms

    def attempt_budget(self) -> int:
        """Worst-case duration of one full attempt.

        Launch, load and print; the settle wait after load is carved out of the
        navigation budget, so it adds nothing here.
        """
        return self.browser_launch_budget_ms + self.navigation_budget_ms + self.render_budget_ms

    def describe(self) -> dict[str, object]:
        """Return a JSON-friendly summary for diagnostics."""
        return {
            "profile": "constrained" if self.is_constrained else "unconstrained",
            "browser_launch_budget_ms": self.browser_launch_budget_ms,
            "navigation_budget_ms": self.navigation_budget_ms,
            "render_budget_ms": self.render_budget_ms,
            "wall_clock_budget_ms": self.wall_clock_budget_ms,
            "launch_args": list(self.recommended_launch_args),
        }
