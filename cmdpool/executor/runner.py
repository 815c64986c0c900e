from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from typing import Any, Callable, Mapping, Sequence

from cmdpool._logging import get_logger

from .types import CapturedOutput, Outcome, TaskResult

_log = get_logger("executor.runner")

TASK_ID_ENV = "CMDPOOL_TASK_ID"


class ProcessRunner:
    """Runs the configured command once per call and reports a TaskResult.

    The deadline is enforced with ``communicate(timeout=...)``. When it
    expires the child's process group is killed, unless the child is seen to
    have exited already, in which case its own exit code decides the outcome.
    """

    _KILL_WAIT_SEC = 5.0

    def __init__(
        self,
        command: Sequence[str],
        *,
        quiet: bool = False,
        timeout_s: float | None = None,
        env: Mapping[str, str] | None = None,
        working_dir: str | None = None,
        popen: Callable[..., Any] = subprocess.Popen,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.command = list(command)
        self.quiet = quiet
        self.timeout_s = timeout_s
        self.env = dict(env or {})
        self.working_dir = working_dir
        self._popen = popen
        self._clock = clock
        self._live: set[Any] = set()
        self._live_lock = threading.Lock()
        self._closed = False

    def run(self, task_id: int) -> tuple[TaskResult, CapturedOutput | None]:
        stream = subprocess.DEVNULL if self.quiet else subprocess.PIPE
        child_env = {**os.environ, **self.env, TASK_ID_ENV: str(task_id)}

        started_at = self._clock()
        with self._live_lock:
            if self._closed:
                return self._not_spawned(task_id, "runner closed before spawn", started_at), None

        try:
            process = self._popen(
                self.command,
                stdout=stream,
                stderr=stream,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                env=child_env,
                cwd=self.working_dir or None,
                start_new_session=os.name == "posix",
            )
        # ValueError covers NUL bytes in argv, env or cwd
        except (OSError, ValueError) as exc:
            return self._not_spawned(task_id, str(exc), started_at), None

        with self._live_lock:
            self._live.add(process)
            closed = self._closed
        if closed:
            self._signal_process_tree(process)
        try:
            timed_out = False
            try:
                stdout, stderr = process.communicate(timeout=self.timeout_s)
            except subprocess.TimeoutExpired:
                timed_out = self._kill_if_running(process)
                stdout, stderr = process.communicate()
            ended_at = self._clock()
        finally:
            with self._live_lock:
                self._live.discard(process)

        if timed_out:
            _log.warning(
                "task=%s pid=%s killed after timeout=%ss", task_id, process.pid, self.timeout_s
            )
            outcome = Outcome.timed_out()
        elif process.returncode == 0:
            outcome = Outcome.success()
        else:
            outcome = Outcome.failure(process.returncode)

        result = TaskResult(task_id, outcome, started_at, ended_at)
        if self.quiet:
            return result, None
        return result, CapturedOutput(stdout or "", stderr or "")

    def terminate_all(self) -> int:
        """Kill every running child and refuse to spawn new ones."""
        with self._live_lock:
            self._closed = True
            live = list(self._live)
        for process in live:
            self._signal_process_tree(process)
        return len(live)

    def _not_spawned(self, task_id: int, cause: str, at: float) -> TaskResult:
        _log.warning("task=%s spawn failed: %s", task_id, cause)
        return TaskResult(task_id, Outcome.spawn_error(cause), at, at)

    def _kill_if_running(self, process: Any) -> bool:
        # The child may have exited between the deadline and this check.
        if process.poll() is not None:
            return False
        self._signal_process_tree(process)
        return True

    def _signal_process_tree(self, process: Any) -> None:
        if process.poll() is not None:
            return

        if os.name == "posix":
            try:
                os.killpg(os.getpgid(process.pid), signal.SIGKILL)
                return
            except ProcessLookupError:
                return
            except OSError:
                pass

        try:
            process.kill()
        except ProcessLookupError:
            return
