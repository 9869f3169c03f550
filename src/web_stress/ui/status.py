"""Progress reporting surface shared by the simulated users."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from tqdm import tqdm

logger = logging.getLogger(__name__)


class StatusSink(Protocol):
    def on_status_message(self, worker_id: int, text: str) -> None:
        ...

    def on_tick(self, worker_id: int) -> None:
        ...

    def on_worker_finished(self, worker_id: int) -> None:
        ...


@dataclass(frozen=True, slots=True)
class StatusLane:
    """A worker's exclusive handle on the shared sink."""

    sink: StatusSink
    worker_id: int

    def message(self, text: str) -> None:
        self.sink.on_status_message(self.worker_id, text)

    def tick(self) -> None:
        self.sink.on_tick(self.worker_id)

    def finished(self) -> None:
        self.sink.on_worker_finished(self.worker_id)


class NullStatusSink:
    def on_status_message(self, worker_id: int, text: str) -> None:
        return

    def on_tick(self, worker_id: int) -> None:
        return

    def on_worker_finished(self, worker_id: int) -> None:
        return


class LoggingStatusSink:
    """Writes every event to the log; used when no terminal is attached."""

    def __init__(self, user_count: int, level: int = logging.INFO) -> None:
        self.user_count = user_count
        self.level = level

    def _prefix(self, worker_id: int) -> str:
        return f"[{worker_id + 1}/{self.user_count}]"

    def on_status_message(self, worker_id: int, text: str) -> None:
        logger.log(self.level, "%s %s", self._prefix(worker_id), text)

    def on_tick(self, worker_id: int) -> None:
        return

    def on_worker_finished(self, worker_id: int) -> None:
        logger.log(self.level, "%s done...", self._prefix(worker_id))


class ProgressStatusSink:
    """One tqdm line per simulated user showing its latest message."""

    BAR_FORMAT = "{desc} {n_fmt} steps [{elapsed}] {postfix}"

    def __init__(self, user_count: int, *, file=None, disable: Optional[bool] = False) -> None:
        self.user_count = user_count
        self._bars: Dict[int, tqdm] = {}
        for worker_id in range(user_count):
            self._bars[worker_id] = tqdm(
                total=None,
                desc=f"[{worker_id + 1}/{user_count}]",
                position=worker_id,
                bar_format=self.BAR_FORMAT,
                dynamic_ncols=True,
                leave=True,
                file=file,
                disable=disable,
            )

    def on_status_message(self, worker_id: int, text: str) -> None:
        self._bars[worker_id].set_postfix_str(text)

    def on_tick(self, worker_id: int) -> None:
        self._bars[worker_id].update(1)

    def on_worker_finished(self, worker_id: int) -> None:
        bar = self._bars[worker_id]
        bar.set_postfix_str("done...")
        bar.refresh()

    def close(self) -> None:
        for bar in self._bars.values():
            bar.close()
        self._bars.clear()
