"""Contract between the crawl engine and a browser backend."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence


class NavigationError(RuntimeError):
    """Raised when a backend cannot load the requested page."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url
        self.message = message


class Element(Protocol):
    def attribute(self, name: str) -> Optional[str]:
        ...


class PageHandle(Protocol):
    url: str

    def find_all(self, selector: str) -> Sequence[Element]:
        ...


class BrowserSession(Protocol):
    """One simulated user's browser, used as a context manager."""

    def __enter__(self) -> "BrowserSession":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...

    def navigate(self, url: str) -> PageHandle:
        ...
