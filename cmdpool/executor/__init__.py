from .collector import ResultCollector
from .gate import ConcurrencyGate, StopSignal
from .orchestrator import Orchestrator, run_pool
from .runner import TASK_ID_ENV, ProcessRunner
from .scheduler import LaunchScheduler
from .types import (
    CapturedOutput,
    DurationStats,
    EventSink,
    Outcome,
    OutcomeKind,
    RunSummary,
    TaskEvent,
    TaskFinished,
    TaskResult,
    TaskStarted,
    TaskState,
)

__all__ = [
    "CapturedOutput",
    "ConcurrencyGate",
    "DurationStats",
    "EventSink",
    "LaunchScheduler",
    "Orchestrator",
    "Outcome",
    "OutcomeKind",
    "ProcessRunner",
    "ResultCollector",
    "RunSummary",
    "StopSignal",
    "TASK_ID_ENV",
    "TaskEvent",
    "TaskFinished",
    "TaskResult",
    "TaskStarted",
    "TaskState",
    "run_pool",
]
