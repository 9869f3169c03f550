"""Outcome data structures produced by a traffic run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class WorkerOutcome:
    """What a single simulated user did before it stopped."""

    worker_id: int
    completed: bool
    sessions_run: int = 0
    navigations: int = 0
    failed_navigations: int = 0
    error: Optional[str] = None

    @property
    def label(self) -> str:
        return f"user {self.worker_id + 1}"

    def describe(self) -> str:
        if not self.completed:
            return f"{self.label}: failed ({self.error or 'unknown error'})"
        return (
            f"{self.label}: {self.sessions_run} session(s), "
            f"{self.navigations} page(s), {self.failed_navigations} error(s)"
        )


@dataclass(frozen=True)
class RunSummary:
    """Aggregated result for every worker of a run."""

    outcomes: Tuple[WorkerOutcome, ...]
    elapsed_seconds: float
    shutdown_requested: bool = False

    @property
    def completed_workers(self) -> Tuple[WorkerOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if outcome.completed)

    @property
    def failed_workers(self) -> Tuple[WorkerOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if not outcome.completed)

    @property
    def total_navigations(self) -> int:
        return sum(outcome.navigations for outcome in self.outcomes)

    @property
    def all_completed(self) -> bool:
        return not self.failed_workers


def format_elapsed(seconds: float) -> str:
    """Human readable duration, e.g. ``2 minutes 5 seconds``."""

    total = int(round(seconds))
    if total < 1:
        return f"{seconds:.2f} seconds"

    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    for value, unit in ((hours, "hour"), (minutes, "minute"), (secs, "second")):
        if value:
            parts.append(f"{value} {unit}{'' if value == 1 else 's'}")
    return " ".join(parts)
