from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Union


class OutcomeKind(Enum):
    SUCCESS = auto()
    FAILURE = auto()
    TIMED_OUT = auto()
    SPAWN_ERROR = auto()


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    exit_code: int | None = None
    cause: str | None = None

    @classmethod
    def success(cls) -> Outcome:
        return cls(OutcomeKind.SUCCESS, exit_code=0)

    @classmethod
    def failure(cls, exit_code: int) -> Outcome:
        return cls(OutcomeKind.FAILURE, exit_code=exit_code)

    @classmethod
    def timed_out(cls) -> Outcome:
        return cls(OutcomeKind.TIMED_OUT)

    @classmethod
    def spawn_error(cls, cause: str) -> Outcome:
        return cls(OutcomeKind.SPAWN_ERROR, cause=cause)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def describe(self) -> str:
        match self.kind:
            case OutcomeKind.SUCCESS:
                return f"Success (Exit Code: {self.exit_code})"
            case OutcomeKind.FAILURE:
                return f"Failed (Exit Code: {self.exit_code})"
            case OutcomeKind.TIMED_OUT:
                return "Timed out"
            case OutcomeKind.SPAWN_ERROR:
                return f"Error: {self.cause}"
            case _:
                raise AssertionError("Unreachable")


class TaskState(Enum):
    PENDING = auto()
    RUNNING = auto()
    FINISHED = auto()


@dataclass
class Task:
    task_id: int
    launched_at: float
    state: TaskState = TaskState.PENDING


@dataclass(frozen=True)
class TaskResult:
    task_id: int
    outcome: Outcome
    started_at: float
    ended_at: float

    @property
    def duration_s(self) -> float:
        return self.ended_at - self.started_at


@dataclass(frozen=True)
class CapturedOutput:
    stdout: str
    stderr: str


@dataclass(frozen=True)
class DurationStats:
    count: int
    total_s: float
    min_s: float
    max_s: float

    @property
    def avg_s(self) -> float:
        return self.total_s / self.count


@dataclass(frozen=True)
class RunSummary:
    total: int
    succeeded: int
    failed: int
    timed_out: int
    spawn_errors: int
    success_durations: DurationStats | None
    failure_durations: DurationStats | None
    wall_clock_s: float
    stopped_early: bool = False

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.succeeded / self.total

    @property
    def avg_duration_s(self) -> float | None:
        if self.success_durations is None:
            return None
        return self.success_durations.avg_s

    @property
    def min_duration_s(self) -> float | None:
        if self.success_durations is None:
            return None
        return self.success_durations.min_s

    @property
    def max_duration_s(self) -> float | None:
        if self.success_durations is None:
            return None
        return self.success_durations.max_s


@dataclass(frozen=True)
class TaskStarted:
    task_id: int
    running_count: int
    launched_at: float


@dataclass(frozen=True)
class TaskFinished:
    task_id: int
    outcome: Outcome
    duration_s: float
    running_count: int
    output: CapturedOutput | None = None


TaskEvent = Union[TaskStarted, TaskFinished]
EventSink = Callable[[TaskEvent], None]
