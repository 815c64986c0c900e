from __future__ import annotations

import itertools
import time
from typing import Callable, Iterator

from cmdpool._logging import get_logger
from cmdpool.config import RunConfiguration

from .gate import ConcurrencyGate, StopSignal

_log = get_logger("executor.scheduler")

LaunchFn = Callable[[int, float], None]


class LaunchScheduler:
    """Decides when each task gets launched.

    The first ``concurrency`` launches are spaced ``launch_delay_s`` apart.
    After that a task is launched as soon as the gate hands out a slot. The
    ``launch`` callable takes ownership of the acquired slot and must release
    it once the task finishes.
    """

    def __init__(
        self,
        config: RunConfiguration,
        gate: ConcurrencyGate,
        stop: StopSignal,
        launch: LaunchFn,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.gate = gate
        self.stop = stop
        self.launch = launch
        self._clock = clock
        self.launched = 0

    def task_ids(self) -> Iterator[int]:
        if self.config.total_tasks is None:
            return itertools.count(1)
        return iter(range(1, self.config.total_tasks + 1))

    def run(self) -> int:
        burst = self.config.initial_burst()

        for task_id in self.task_ids():
            if self.stop.is_set():
                break

            if not self.gate.acquire(abort=self.stop.is_set):
                break

            launched_at = self._clock()
            _log.debug("task=%s granted slot running=%s", task_id, self.gate.holders)
            try:
                self.launch(task_id, launched_at)
            except BaseException:
                self.gate.release()
                raise
            self.launched = task_id

            if task_id < burst and self.config.launch_delay_s > 0:
                # A tripped stop signal cuts the delay short.
                self.stop.wait(self.config.launch_delay_s)

        if self.stop.is_set():
            _log.info(
                "launches stopped after task=%s reason=%s", self.launched, self.stop.reason
            )
        return self.launched
