from __future__ import annotations

import sys
import threading

from cmdpool.config import RunConfiguration
from cmdpool.executor import DurationStats, RunSummary, TaskEvent, TaskFinished, TaskStarted

_RULE = "-" * 40


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.2f}s"

    whole = int(seconds)
    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs:
        parts.append(f"{secs}s")
    return " ".join(parts)


class ConsoleReporter:
    """Prints task lifecycle lines; safe to call from worker threads."""

    def __init__(self, *, quiet: bool = False):
        self.quiet = quiet
        self._lock = threading.Lock()

    def __call__(self, event: TaskEvent) -> None:
        with self._lock:
            match event:
                case TaskStarted():
                    print(f"[Task {event.task_id}] Starting... (Running: {event.running_count})")
                case TaskFinished():
                    self._print_finished(event)

    def _print_finished(self, event: TaskFinished) -> None:
        print(
            f"[Task {event.task_id}] Finished: {event.outcome.describe()} "
            f"after {format_duration(event.duration_s)} (Running: {event.running_count})"
        )
        if self.quiet or event.output is None:
            return
        if event.output.stdout:
            print(f"[Task {event.task_id}] Stdout:\n{event.output.stdout}")
        if event.output.stderr:
            print(f"[Task {event.task_id}] Stderr:\n{event.output.stderr}", file=sys.stderr)


def print_header(config: RunConfiguration) -> None:
    total = config.total_tasks if config.total_tasks is not None else "unbounded"
    timeout = f"{config.timeout_s}s" if config.timeout_s is not None else "none"
    print("Starting cmdpool with:")
    print(f"  Concurrency: {config.concurrency}")
    print(f"  Total tasks: {total}")
    print(f"  Command: {config.command_line()}")
    print(f"  Timeout: {timeout}")
    print(f"  Stop on fail: {config.stop_on_fail}")
    print(f"  Quiet mode: {config.quiet}")
    print(f"  Initial launch delay: {round(config.launch_delay_s * 1000)}ms")
    print(_RULE)


def print_summary(summary: RunSummary) -> None:
    print(_RULE)
    if summary.stopped_early:
        print("Stopped early, no further tasks were launched.")
    else:
        print("All tasks completed.")
    print(f"Total: {summary.total}")
    print(f"Successful: {summary.succeeded}")
    print(f"Failed: {summary.failed}")
    if summary.timed_out:
        print(f"  Timed out: {summary.timed_out}")
    if summary.spawn_errors:
        print(f"  Spawn errors: {summary.spawn_errors}")
    print(f"Success Rate: {summary.success_rate * 100:.2f}%")

    _print_stats("Successful Tasks Statistics:", summary.success_durations)
    _print_stats("Failed Tasks Statistics:", summary.failure_durations)

    print(f"\nTotal cmdpool execution time: {format_duration(summary.wall_clock_s)}")


def _print_stats(title: str, stats: DurationStats | None) -> None:
    if stats is None:
        return
    print(f"\n{title}")
    print(f"  Average Duration: {format_duration(stats.avg_s)}")
    print(f"  Min Duration: {format_duration(stats.min_s)}")
    print(f"  Max Duration: {format_duration(stats.max_s)}")
