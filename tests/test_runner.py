from __future__ import annotations

import os
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from cmdpool.executor.runner import TASK_ID_ENV, ProcessRunner
from cmdpool.executor.types import OutcomeKind


def _py(code: str) -> list[str]:
    """argv that runs `python -c <code>` with the current interpreter."""
    return [sys.executable, "-c", code]


class _FakeProcess:
    """Stands in for Popen when the deadline fires; ``exits_first`` decides the race."""

    pid = 424242

    def __init__(self, *, exits_first: bool):
        self.exits_first = exits_first
        self.returncode: int | None = None
        self.killed = False

    def communicate(self, timeout: float | None = None) -> tuple[str, str]:
        if timeout is not None:
            raise subprocess.TimeoutExpired("fake", timeout)
        if self.returncode is None:
            self.returncode = -9
        return "late output", ""

    def poll(self) -> int | None:
        if self.exits_first:
            self.returncode = 0
        return self.returncode

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9


def test_success_captures_stdout() -> None:
    runner = ProcessRunner(_py("print('hello')"))

    result, output = runner.run(1)

    assert result.task_id == 1
    assert result.outcome.kind is OutcomeKind.SUCCESS
    assert result.outcome.exit_code == 0
    assert result.duration_s >= 0
    assert output is not None
    assert output.stdout.strip() == "hello"


def test_non_zero_exit_is_failure_with_code() -> None:
    runner = ProcessRunner(_py("import sys; sys.stderr.write('boom'); raise SystemExit(7)"))

    result, output = runner.run(3)

    assert result.outcome.kind is OutcomeKind.FAILURE
    assert result.outcome.exit_code == 7
    assert not result.outcome.ok
    assert output is not None
    assert output.stderr == "boom"


def test_quiet_discards_output() -> None:
    runner = ProcessRunner(_py("print('noise')"), quiet=True)

    result, output = runner.run(1)

    assert result.outcome.ok
    assert output is None


def test_spawn_error_has_zero_duration(tmp_path: Path) -> None:
    runner = ProcessRunner([str(tmp_path / "does-not-exist")])

    result, output = runner.run(1)

    assert result.outcome.kind is OutcomeKind.SPAWN_ERROR
    assert result.outcome.cause
    assert result.duration_s == 0
    assert output is None


def test_timeout_kills_child_and_reports_timed_out() -> None:
    runner = ProcessRunner(_py("import time; time.sleep(5)"), timeout_s=1.0)

    start = time.monotonic()
    result, _ = runner.run(1)
    elapsed = time.monotonic() - start

    assert result.outcome.kind is OutcomeKind.TIMED_OUT
    assert 0.9 <= result.duration_s < 3.0
    assert elapsed < 4.0


def test_task_id_and_env_are_visible_to_child(tmp_path: Path) -> None:
    code = (
        "import os; "
        f"ok = os.environ['{TASK_ID_ENV}'] == '5' and os.environ['POOL_TEST'] == 'yes'; "
        "raise SystemExit(0 if ok else 2)"
    )
    runner = ProcessRunner(_py(code), env={"POOL_TEST": "yes"})

    result, _ = runner.run(5)

    assert result.outcome.ok


def test_working_dir_is_respected(tmp_path: Path) -> None:
    runner = ProcessRunner(
        _py("from pathlib import Path; Path('written.txt').write_text('ok', encoding='utf-8')"),
        working_dir=str(tmp_path),
    )

    result, _ = runner.run(1)

    assert result.outcome.ok
    assert (tmp_path / "written.txt").read_text(encoding="utf-8") == "ok"


def test_deadline_race_natural_exit_wins_when_observed_first() -> None:
    proc = _FakeProcess(exits_first=True)
    runner = ProcessRunner(["fake"], timeout_s=1.0, popen=lambda *a, **kw: proc)

    result, output = runner.run(1)

    assert result.outcome.kind is OutcomeKind.SUCCESS
    assert proc.killed is False
    assert output is not None
    assert output.stdout == "late output"


def test_deadline_race_kill_sent_first_is_timed_out(monkeypatch: pytest.MonkeyPatch) -> None:
    proc = _FakeProcess(exits_first=False)
    signalled: list[int] = []
    monkeypatch.setattr(os, "getpgid", lambda pid: pid, raising=False)
    monkeypatch.setattr(os, "killpg", lambda pgid, sig: signalled.append(pgid), raising=False)
    runner = ProcessRunner(["fake"], timeout_s=1.0, popen=lambda *a, **kw: proc)

    result, _ = runner.run(1)

    assert result.outcome.kind is OutcomeKind.TIMED_OUT
    assert signalled == [proc.pid] or proc.killed


@pytest.mark.skipif(os.name != "posix", reason="process groups are POSIX only")
def test_terminate_all_kills_running_children() -> None:
    runner = ProcessRunner(_py("import time; time.sleep(30)"))
    results = []

    t = threading.Thread(target=lambda: results.append(runner.run(1)))
    t.start()

    deadline = time.monotonic() + 5.0
    killed = 0
    while time.monotonic() < deadline and killed == 0:
        killed = runner.terminate_all()
        time.sleep(0.05)
    t.join(5.0)

    assert killed == 1
    assert not t.is_alive()
    result, _ = results[0]
    assert result.outcome.kind is OutcomeKind.FAILURE
    assert result.outcome.exit_code == -9


def test_nul_byte_in_argv_is_a_spawn_error() -> None:
    runner = ProcessRunner([sys.executable, "-c", "pass", "a\x00b"])

    result, output = runner.run(1)

    assert result.outcome.kind is OutcomeKind.SPAWN_ERROR
    assert "null" in (result.outcome.cause or "")
    assert result.duration_s == 0
    assert output is None


def test_nul_byte_in_env_is_a_spawn_error() -> None:
    runner = ProcessRunner(_py("pass"), env={"POOL_TEST": "a\x00b"})

    result, _ = runner.run(1)

    assert result.outcome.kind is OutcomeKind.SPAWN_ERROR


def test_closed_runner_does_not_spawn() -> None:
    calls: list[object] = []

    def popen(*args: object, **kwargs: object) -> None:
        calls.append(args)
        raise AssertionError("should not spawn")

    runner = ProcessRunner(["fake"], popen=popen)
    assert runner.terminate_all() == 0

    result, output = runner.run(7)

    assert calls == []
    assert result.task_id == 7
    assert result.outcome.kind is OutcomeKind.SPAWN_ERROR
    assert output is None
