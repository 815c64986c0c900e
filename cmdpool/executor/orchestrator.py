from __future__ import annotations

import concurrent.futures
import time
from typing import Callable

from cmdpool._logging import get_logger
from cmdpool.config import RunConfiguration, validate_configuration

from .collector import ResultCollector
from .gate import ConcurrencyGate, StopSignal
from .runner import ProcessRunner
from .scheduler import LaunchScheduler
from .types import (
    EventSink,
    Outcome,
    RunSummary,
    Task,
    TaskEvent,
    TaskFinished,
    TaskResult,
    TaskStarted,
    TaskState,
)

_log = get_logger("executor.orchestrator")


class Orchestrator:
    def __init__(
        self,
        config: RunConfiguration,
        *,
        on_event: EventSink | None = None,
        runner: ProcessRunner | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = validate_configuration(config)
        self.on_event = on_event
        self.runner = runner or ProcessRunner(
            config.command,
            quiet=config.quiet,
            timeout_s=config.timeout_s,
            env=config.env,
            working_dir=config.working_dir,
            clock=clock,
        )
        self.gate = ConcurrencyGate(config.concurrency)
        self.stop_signal = StopSignal()
        self.collector = ResultCollector(self.stop_signal, stop_on_fail=config.stop_on_fail)
        self._clock = clock
        self._pool: concurrent.futures.ThreadPoolExecutor | None = None
        self._futures: set[concurrent.futures.Future[None]] = set()

    def run(self) -> RunSummary:
        _log.info(
            "run start command=%r concurrency=%s total_tasks=%s",
            self.config.command_line(),
            self.config.concurrency,
            self.config.total_tasks,
        )
        scheduler = LaunchScheduler(
            self.config, self.gate, self.stop_signal, self._launch, clock=self._clock
        )

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self.config.concurrency, thread_name_prefix="cmdpool-task"
        ) as pool:
            self._pool = pool
            try:
                scheduler.run()
                self._drain()
            except KeyboardInterrupt:
                self.stop_signal.trip("interrupted")
                killed = self.runner.terminate_all()
                _log.warning("interrupted, killed %s running task(s)", killed)
                self._drain()
                raise
            finally:
                self._pool = None

        summary = self.collector.summary()
        _log.info(
            "run done total=%s succeeded=%s failed=%s wall_clock=%.3fs",
            summary.total,
            summary.succeeded,
            summary.failed,
            summary.wall_clock_s,
        )
        return summary

    def stop(self, reason: str = "stopped") -> None:
        """Stop issuing new launches; running tasks are left to finish."""
        self.stop_signal.trip(reason)
        self.gate.wake()

    def _launch(self, task_id: int, launched_at: float) -> None:
        if self._pool is None:
            raise RuntimeError("tasks can only be launched while run() is active")
        self._prune()
        self.collector.note_launch(launched_at)
        task = Task(task_id, launched_at)
        future = self._pool.submit(self._execute, task)
        self._futures.add(future)

    def _execute(self, task: Task) -> None:
        released = False
        try:
            task.state = TaskState.RUNNING
            self._emit(TaskStarted(task.task_id, self.gate.holders, task.launched_at))
            try:
                result, output = self.runner.run(task.task_id)
            except Exception as exc:
                _log.exception("task=%s runner raised", task.task_id)
                now = self._clock()
                result, output = TaskResult(task.task_id, Outcome.spawn_error(str(exc)), now, now), None
            task.state = TaskState.FINISHED
            self.collector.absorb(result)
            running = self.gate.release()
            released = True
            self._emit(
                TaskFinished(task.task_id, result.outcome, result.duration_s, running, output)
            )
        finally:
            if not released:
                self.gate.release()

    def _emit(self, event: TaskEvent) -> None:
        if self.on_event is None:
            return
        try:
            self.on_event(event)
        except Exception:
            _log.exception("event sink failed for task=%s", event.task_id)

    def _prune(self) -> None:
        done = {f for f in self._futures if f.done()}
        self._futures -= done
        for future in done:
            future.result()

    def _drain(self) -> None:
        pending = self._futures
        self._futures = set()
        done, _ = concurrent.futures.wait(pending)
        for future in done:
            future.result()


def run_pool(config: RunConfiguration, on_event: EventSink | None = None) -> RunSummary:
    return Orchestrator(config, on_event=on_event).run()
