from __future__ import annotations

import threading
from typing import Callable


class ConcurrencyGate:
    """Counting admission control for in-flight tasks.

    ``acquire`` blocks until one of ``capacity`` slots is free. An optional
    ``abort`` predicate is evaluated under the gate lock right before a slot
    would be granted, so a caller that is told to abort never holds a slot.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._cond = threading.Condition()
        self._holders = 0
        self._peak = 0

    @property
    def holders(self) -> int:
        with self._cond:
            return self._holders

    @property
    def peak(self) -> int:
        with self._cond:
            return self._peak

    def acquire(self, abort: Callable[[], bool] | None = None) -> bool:
        with self._cond:
            while True:
                if abort is not None and abort():
                    return False
                if self._holders < self.capacity:
                    self._holders += 1
                    self._peak = max(self._peak, self._holders)
                    return True
                self._cond.wait()

    def release(self) -> int:
        with self._cond:
            if self._holders < 1:
                raise RuntimeError("release() called on a gate with no holders")
            self._holders -= 1
            # notify_all so that waiters blocked on an abort predicate re-check it
            self._cond.notify_all()
            return self._holders

    def wake(self) -> None:
        with self._cond:
            self._cond.notify_all()


class StopSignal:
    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self.reason: str | None = None
        self.task_id: int | None = None

    def is_set(self) -> bool:
        return self._event.is_set()

    def trip(self, reason: str, task_id: int | None = None) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self.reason = reason
            self.task_id = task_id
            self._event.set()
            return True

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)
