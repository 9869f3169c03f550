"""Browser backends used by simulated users."""

from __future__ import annotations

from typing import Callable

from ..core.config import BrowserOptions
from .base import BrowserSession, Element, NavigationError, PageHandle

SessionFactory = Callable[[], BrowserSession]


def session_factory(options: BrowserOptions) -> SessionFactory:
    """Returns a callable creating a fresh, not yet opened session per call."""

    if options.engine == "chromium":
        from .chromium import PlaywrightSession

        return lambda: PlaywrightSession(headless=options.headless, user_agent=options.user_agent)

    from .requests_backend import HttpSession

    return lambda: HttpSession(user_agent=options.user_agent)


__all__ = [
    "BrowserSession",
    "Element",
    "NavigationError",
    "PageHandle",
    "SessionFactory",
    "session_factory",
]
