"""Runs every simulated user concurrently and collects their outcomes."""

from __future__ import annotations

import concurrent.futures
import logging
import random
import threading
import time
from typing import Callable, List, Optional

from ..browser import SessionFactory
from ..core.config import CrawlTarget, RunSettings
from ..core.report import RunSummary, WorkerOutcome
from ..ui.status import NullStatusSink, StatusLane, StatusSink
from .traversal import TraversalWorker

logger = logging.getLogger(__name__)

WAIT_POLL_SECONDS = 0.2


class Orchestrator:
    """Fixed pool of one thread per simulated user.

    A shutdown request only ends the orchestrator's own wait; every worker is
    still joined and runs to completion unless ``cancel_on_shutdown`` hands
    the shutdown event to the workers as their stop token.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        sink: Optional[StatusSink] = None,
        *,
        shutdown_event: Optional[threading.Event] = None,
        cancel_on_shutdown: bool = False,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = WAIT_POLL_SECONDS,
    ) -> None:
        self.session_factory = session_factory
        self.sink = sink or NullStatusSink()
        self.shutdown_event = shutdown_event or threading.Event()
        self.cancel_on_shutdown = cancel_on_shutdown
        self.poll_interval = poll_interval
        self._sleep = sleep

    def run(self, settings: RunSettings, target: CrawlTarget) -> RunSummary:
        started = time.monotonic()
        workers = [self._create_worker(worker_id, settings, target) for worker_id in range(settings.user_count)]

        logger.info("Spawning %d simulated user(s)", len(workers))
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=len(workers), thread_name_prefix="user")
        try:
            futures = [executor.submit(worker.run) for worker in workers]
            self._wait_for_workers(futures)
            outcomes = [self._join(worker, future) for worker, future in zip(workers, futures)]
        except KeyboardInterrupt:
            # Abandon the running users instead of blocking on them.
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        elapsed = time.monotonic() - started
        summary = RunSummary(
            outcomes=tuple(outcomes),
            elapsed_seconds=elapsed,
            shutdown_requested=self.shutdown_event.is_set(),
        )
        logger.info(
            "Run finished in %.2fs: %d/%d user(s) completed, %d page(s) loaded",
            elapsed,
            len(summary.completed_workers),
            len(outcomes),
            summary.total_navigations,
        )
        return summary

    def request_shutdown(self) -> None:
        self.shutdown_event.set()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _create_worker(self, worker_id: int, settings: RunSettings, target: CrawlTarget) -> TraversalWorker:
        return TraversalWorker(
            worker_id,
            settings,
            target,
            self.session_factory,
            StatusLane(self.sink, worker_id),
            rng=random.Random(),
            sleep=self._sleep,
            stop_event=self.shutdown_event if self.cancel_on_shutdown else None,
        )

    def _wait_for_workers(self, futures: List[concurrent.futures.Future]) -> None:
        pending = set(futures)
        while pending and not self.shutdown_event.is_set():
            _, pending = concurrent.futures.wait(pending, timeout=self.poll_interval)

        if pending:
            logger.info("Shutdown requested, waiting for %d user(s) to finish", len(pending))

    def _join(self, worker: TraversalWorker, future: concurrent.futures.Future) -> WorkerOutcome:
        try:
            return future.result()
        except Exception as exc:
            logger.error("Simulated user %d crashed", worker.worker_id + 1, exc_info=exc)
            worker.lane.message(f"crashed: {exc}")
            return WorkerOutcome(
                worker_id=worker.worker_id,
                completed=False,
                sessions_run=worker.sessions_run,
                navigations=worker.navigations,
                failed_navigations=worker.failed_navigations,
                error=f"{type(exc).__name__}: {exc}",
            )
