from __future__ import annotations

import itertools

from cmdpool.config.types import RunConfiguration
from cmdpool.executor.gate import ConcurrencyGate, StopSignal
from cmdpool.executor.scheduler import LaunchScheduler


class _RecordingStop(StopSignal):
    def __init__(self) -> None:
        super().__init__()
        self.waits: list[float | None] = []

    def wait(self, timeout: float | None = None) -> bool:
        self.waits.append(timeout)
        return self.is_set()


def _scheduler(config: RunConfiguration, stop: StopSignal, launched: list[int]):
    gate = ConcurrencyGate(config.concurrency)

    def launch(task_id: int, launched_at: float) -> None:
        launched.append(task_id)
        # instantaneous task
        gate.release()

    clock = itertools.count()
    return LaunchScheduler(config, gate, stop, launch, clock=lambda: float(next(clock)))


def test_launches_every_task_in_order() -> None:
    launched: list[int] = []
    config = RunConfiguration(command=("true",), concurrency=2, total_tasks=5, launch_delay_s=0.0)

    count = _scheduler(config, StopSignal(), launched).run()

    assert count == 5
    assert launched == [1, 2, 3, 4, 5]


def test_delay_only_between_initial_burst_launches() -> None:
    launched: list[int] = []
    stop = _RecordingStop()
    config = RunConfiguration(command=("true",), concurrency=3, total_tasks=6, launch_delay_s=0.25)

    _scheduler(config, stop, launched).run()

    assert launched == [1, 2, 3, 4, 5, 6]
    # after task 1 and task 2, not after the last burst task or later ones
    assert stop.waits == [0.25, 0.25]


def test_burst_is_capped_by_total_tasks() -> None:
    stop = _RecordingStop()
    config = RunConfiguration(command=("true",), concurrency=4, total_tasks=2, launch_delay_s=0.1)

    _scheduler(config, stop, []).run()

    assert stop.waits == [0.1]


def test_zero_tasks_launches_nothing() -> None:
    launched: list[int] = []
    config = RunConfiguration(command=("true",), concurrency=2, total_tasks=0)

    assert _scheduler(config, StopSignal(), launched).run() == 0
    assert launched == []


def test_tripped_stop_prevents_further_launches() -> None:
    launched: list[int] = []
    stop = StopSignal()
    config = RunConfiguration(command=("true",), concurrency=1, launch_delay_s=0.0)
    gate = ConcurrencyGate(1)

    def launch(task_id: int, launched_at: float) -> None:
        launched.append(task_id)
        if task_id == 3:
            stop.trip("task 3 failed", 3)
        gate.release()

    LaunchScheduler(config, gate, stop, launch).run()

    assert launched == [1, 2, 3]
