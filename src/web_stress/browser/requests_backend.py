"""Non-rendering browser backed by ``requests`` and BeautifulSoup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag

from .base import NavigationError

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass(slots=True)
class SoupElement:
    tag: Tag

    def attribute(self, name: str) -> Optional[str]:
        value = self.tag.get(name)
        if isinstance(value, list):  # multi-valued attributes such as ``class``
            return " ".join(value)
        return value


@dataclass(slots=True)
class SoupPage:
    """Parsed document of a fetched URL."""

    url: str
    soup: BeautifulSoup
    status_code: int

    def find_all(self, selector: str) -> List[SoupElement]:
        return [SoupElement(tag) for tag in self.soup.select(selector)]


class HttpSession:
    """Fetches pages over plain HTTP; no JavaScript or CSS is executed."""

    def __init__(self, user_agent: str) -> None:
        self.user_agent = user_agent
        self._session: Optional[requests.Session] = None

    def __enter__(self) -> "HttpSession":
        session = requests.Session()
        session.headers.update(REQUEST_HEADERS)
        session.headers["User-Agent"] = self.user_agent
        self._session = session
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def navigate(self, url: str) -> SoupPage:
        if self._session is None:
            raise RuntimeError("HttpSession must be entered before navigating")

        try:
            response = self._session.get(url, allow_redirects=True)
        except requests.RequestException as exc:
            raise NavigationError(url, f"{url}: {exc}") from exc

        if response.status_code >= 400:
            raise NavigationError(url, f"{url}: HTTP {response.status_code}")

        logger.debug("Fetched %s (%s, %d bytes)", url, response.status_code, len(response.content))
        return SoupPage(
            url=response.url or url,
            soup=BeautifulSoup(response.text, "html.parser"),
            status_code=response.status_code,
        )
