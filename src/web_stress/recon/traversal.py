"""Browsing session of a single simulated user."""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple

from ..browser import SessionFactory
from ..browser.base import BrowserSession, NavigationError
from ..core.config import CrawlTarget, RunSettings
from ..core.report import WorkerOutcome
from ..ui.status import StatusLane
from .scope import ScopePolicy, filter_links

logger = logging.getLogger(__name__)

# Pause between link extraction and following the first link, on top of the page wait.
LINK_FOLLOW_WAIT_MS = 500


def jittered_delay_ms(base_ms: int, rng: Optional[random.Random] = None) -> int:
    """Returns a delay uniformly drawn from ``[base_ms, 2 * base_ms)``."""

    base_ms = max(1, base_ms)
    return base_ms + (rng or random).randrange(base_ms)


class TraversalWorker:
    """Runs one simulated user's traversal ``repeat_count`` times on its own session."""

    def __init__(
        self,
        worker_id: int,
        settings: RunSettings,
        target: CrawlTarget,
        session_factory: SessionFactory,
        lane: StatusLane,
        *,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        self.worker_id = worker_id
        self.settings = settings
        self.target = target
        self.lane = lane
        self._session_factory = session_factory
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._stop_event = stop_event
        self._policy: Optional[ScopePolicy] = (
            ScopePolicy.from_seed(target.seed_url, settings) if target.seed_url is not None else None
        )

        self.sessions_run = 0
        self.navigations = 0
        self.failed_navigations = 0

    # ------------------------------------------------------------------
    # Session loop
    # ------------------------------------------------------------------
    def run(self) -> WorkerOutcome:
        self.lane.message("Loading browser...")
        self.lane.tick()

        with self._session_factory() as session:
            self.lane.tick()
            for _ in range(self.settings.repeat_count):
                if self.stopped:
                    break
                if self.target.seed_url is not None:
                    self.traverse(session, self.target.seed_url)
                else:
                    self.traverse_list(session, self.target.url_list or ())
                self.sessions_run += 1
                self.lane.tick()

        self.lane.finished()
        return WorkerOutcome(
            worker_id=self.worker_id,
            completed=True,
            sessions_run=self.sessions_run,
            navigations=self.navigations,
            failed_navigations=self.failed_navigations,
        )

    @property
    def stopped(self) -> bool:
        return self._stop_event is not None and self._stop_event.is_set()

    # ------------------------------------------------------------------
    # Traversal modes
    # ------------------------------------------------------------------
    def traverse(self, session: BrowserSession, url: str, depth: int = 0) -> None:
        """Depth-first, pre-order walk of in-scope links starting at ``url``.

        Uses an explicit stack so large depth limits cannot exhaust the
        interpreter's recursion limit; the visiting order is the same as the
        recursive definition. A failed navigation prunes only its own subtree.
        """

        max_depth = self.settings.max_depth
        pending: List[Tuple[str, int]] = [(url, depth)]

        while pending:
            current, current_depth = pending.pop()
            if current_depth > max_depth or self.stopped:
                continue

            page = self._navigate(session, current)
            if page is None:
                continue

            next_depth = current_depth + 1
            if next_depth > max_depth:
                continue

            self._pause(self.settings.base_wait_ms)

            assert self._policy is not None
            links = filter_links(page, self._policy, getattr(page, "url", current), rng=self._rng)
            self.lane.message(f"found {len(links)} links")
            self.lane.tick()
            self._pause(LINK_FOLLOW_WAIT_MS)
            self.lane.tick()

            pending.extend((link, next_depth) for link in reversed(links))

    def traverse_list(self, session: BrowserSession, urls: Sequence[str]) -> None:
        """Visits ``urls`` in order; the first failure abandons the rest of the list."""

        for url in urls:
            if self.stopped:
                return
            if self._navigate(session, url) is None:
                return
            self._pause(self.settings.base_wait_ms)
            self.lane.tick()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _navigate(self, session: BrowserSession, url: str):
        self.lane.message(f"Loading {url}")
        self.lane.tick()
        try:
            page = session.navigate(url)
        except NavigationError as exc:
            self.failed_navigations += 1
            logger.warning("[user %d] navigation failed: %s", self.worker_id + 1, exc.message)
            self.lane.message(f"Err: {exc.message}")
            return None

        self.navigations += 1
        self.lane.tick()
        return page

    def _pause(self, base_ms: int) -> None:
        seconds = jittered_delay_ms(base_ms, self._rng) / 1000
        if self._stop_event is not None:
            self._stop_event.wait(seconds)
        else:
            self._sleep(seconds)
