"""Browser layer: environment profiling and headless Chromium sessions.

Public API:
    - EnvironmentProfile: Immutable per-invocation resource budgets
    - BrowserSession: One scoped headless browser process per invocation
    - BrowserConfig: Configuration settings for the browser layer
"""

from pdf_export.browser.config import BrowserConfig, get_browser_config, load_browser_config
from pdf_export.browser.environment import EnvironmentProfile, is_constrained_environment
from pdf_export.browser.session import BrowserSession, SessionState, resolve_executable_path

__all__ = [
    "BrowserSession",
    "SessionState",
    "EnvironmentProfile",
    "is_constrained_environment",
    "resolve_executable_path",
    "BrowserConfig",
    "get_browser_config",
    "load_browser_config",
]
