"""Rendering browser backed by Playwright's Chromium."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from playwright.sync_api import Browser, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from .base import NavigationError

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
]


@dataclass(slots=True)
class LocatorElement:
    locator: Any

    def attribute(self, name: str) -> Optional[str]:
        try:
            return self.locator.get_attribute(name)
        except PlaywrightError:
            return None


@dataclass(slots=True)
class RenderedPage:
    page: Page

    @property
    def url(self) -> str:
        return self.page.url

    def find_all(self, selector: str) -> List[LocatorElement]:
        try:
            return [LocatorElement(locator) for locator in self.page.locator(selector).all()]
        except PlaywrightError:
            return []


class PlaywrightSession:
    """One Chromium instance with a single tab, owned by one simulated user.

    Playwright's sync API is bound to the thread that started it, so the
    session must be entered inside the worker thread that uses it.
    """

    def __init__(self, *, headless: bool, user_agent: str) -> None:
        self.headless = headless
        self.user_agent = user_agent
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None

    def __enter__(self) -> "PlaywrightSession":
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=self.headless, args=BROWSER_ARGS)
            context = self._browser.new_context(user_agent=self.user_agent, locale="en-US")
            self._page = context.new_page()
        except Exception:
            self.__exit__(None, None, None)
            raise
        mode = "headless" if self.headless else "visible"
        logger.debug("Playwright browser initialized (%s mode)", mode)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._browser is not None:
                self._browser.close()
        finally:
            self._browser = None
            self._page = None
            if self._playwright is not None:
                self._playwright.stop()
                self._playwright = None

    def navigate(self, url: str) -> RenderedPage:
        if self._page is None:
            raise RuntimeError("PlaywrightSession must be entered before navigating")

        try:
            response = self._page.goto(url, wait_until="load")
        except PlaywrightError as exc:
            raise NavigationError(url, f"{url}: {exc.message}") from exc

        if response is not None and response.status >= 400:
            raise NavigationError(url, f"{url}: HTTP {response.status}")
        return RenderedPage(self._page)
