from __future__ import annotations

import threading

from cmdpool._logging import get_logger

from .gate import StopSignal
from .types import DurationStats, OutcomeKind, RunSummary, TaskResult

_log = get_logger("executor.collector")


class _DurationFold:
    def __init__(self) -> None:
        self.count = 0
        self.total_s = 0.0
        self.min_s = 0.0
        self.max_s = 0.0

    def add(self, duration_s: float) -> None:
        if self.count == 0:
            self.min_s = duration_s
            self.max_s = duration_s
        else:
            self.min_s = min(self.min_s, duration_s)
            self.max_s = max(self.max_s, duration_s)
        self.count += 1
        self.total_s += duration_s

    def stats(self) -> DurationStats | None:
        if self.count == 0:
            return None
        return DurationStats(self.count, self.total_s, self.min_s, self.max_s)


class ResultCollector:
    """Folds task results, in whatever order they complete, into a summary."""

    def __init__(self, stop: StopSignal, *, stop_on_fail: bool = False):
        self.stop = stop
        self.stop_on_fail = stop_on_fail
        self._lock = threading.Lock()
        self._total = 0
        self._succeeded = 0
        self._failed = 0
        self._timed_out = 0
        self._spawn_errors = 0
        self._success = _DurationFold()
        self._failure = _DurationFold()
        self._first_launch: float | None = None
        self._first_start: float | None = None
        self._last_end: float | None = None

    def note_launch(self, launched_at: float) -> None:
        with self._lock:
            if self._first_launch is None or launched_at < self._first_launch:
                self._first_launch = launched_at

    def absorb(self, result: TaskResult) -> bool:
        with self._lock:
            self._total += 1
            if self._first_start is None or result.started_at < self._first_start:
                self._first_start = result.started_at
            if self._last_end is None or result.ended_at > self._last_end:
                self._last_end = result.ended_at

            if result.outcome.ok:
                self._succeeded += 1
                self._success.add(result.duration_s)
                return False

            self._failed += 1
            self._failure.add(result.duration_s)
            if result.outcome.kind is OutcomeKind.TIMED_OUT:
                self._timed_out += 1
            elif result.outcome.kind is OutcomeKind.SPAWN_ERROR:
                self._spawn_errors += 1

        if not self.stop_on_fail:
            return False

        tripped = self.stop.trip(f"task {result.task_id} failed", result.task_id)
        if tripped:
            _log.info("task=%s failed, no further tasks will be launched", result.task_id)
        return tripped

    def summary(self) -> RunSummary:
        with self._lock:
            wall_clock_s = 0.0
            first = self._first_launch if self._first_launch is not None else self._first_start
            if first is not None and self._last_end is not None:
                wall_clock_s = self._last_end - first

            return RunSummary(
                total=self._total,
                succeeded=self._succeeded,
                failed=self._failed,
                timed_out=self._timed_out,
                spawn_errors=self._spawn_errors,
                success_durations=self._success.stats(),
                failure_durations=self._failure.stats(),
                wall_clock_s=wall_clock_s,
                stopped_early=self.stop.is_set(),
            )
