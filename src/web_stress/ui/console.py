"""Terminal interaction: the quit key and the end-of-run report."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, TextIO

from ..core.report import RunSummary, format_elapsed

logger = logging.getLogger(__name__)

QUIT_KEY = "q"


class QuitKeyListener(threading.Thread):
    """Sets ``event`` once the user types ``q`` followed by Enter.

    Runs as a daemon thread because the blocking read on ``stream`` cannot be
    interrupted; the thread ends on its own at end of input.
    """

    def __init__(self, event: threading.Event, stream: TextIO) -> None:
        super().__init__(name="quit-key", daemon=True)
        self.event = event
        self.stream = stream

    def run(self) -> None:
        while not self.event.is_set():
            try:
                line = self.stream.readline()
            except (OSError, ValueError) as exc:
                logger.debug("Quit key listener stopped: %s", exc)
                return
            if not line:
                return
            if line.strip().lower() == QUIT_KEY:
                logger.info("Quit key received")
                self.event.set()
                return


def print_summary(summary: RunSummary, emit: Optional[Callable[[str], None]] = None) -> None:
    emit = emit or print
    if summary.shutdown_requested:
        emit("[*] Stop requested, all simulated users have been joined.")
    for outcome in summary.outcomes:
        marker = "+" if outcome.completed else "!"
        emit(f"[{marker}] {outcome.describe()}")
    emit(f"[*] Done in {format_elapsed(summary.elapsed_seconds)}")
