"""Repeating-callback schedulers that drive evolution playback."""

from __future__ import annotations

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)


class ScheduledTask(ABC):
    """Handle for a repeating callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop future calls. Safe to call more than once, including from the callback."""
        ...

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        ...


class Scheduler(ABC):
    """Abstract interface for calling a function at a fixed period."""

    @abstractmethod
    def call_repeating(self, interval_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        """Call ``callback`` every ``interval_ms`` until the task is cancelled."""
        ...


class _ThreadTask(ScheduledTask):
    def __init__(self, interval_ms: float, callback: Callable[[], None]):
        self._interval = interval_ms / 1000
        self._callback = callback
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="evolution-tick", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._callback()
            except Exception as e:
                logger.warning("Scheduled callback failed, stopping: %s", e)
                self._stop.set()

    def cancel(self) -> None:
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()


class ThreadingScheduler(Scheduler):
    """Wall-clock scheduler; each task runs on its own daemon thread."""

    def call_repeating(self, interval_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        if interval_ms <= 0:
            raise ValueError("Interval must be positive")
        return _ThreadTask(interval_ms, callback)


class _ManualTask(ScheduledTask):
    def __init__(self, seq: int, interval_ms: float, callback: Callable[[], None], due: float):
        self.seq = seq
        self.interval = interval_ms
        self.callback = callback
        self.due = due
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """Virtual clock: callbacks fire only when ``advance`` moves time forward."""

    def __init__(self) -> None:
        self.now = 0.0
        self._tasks: list[_ManualTask] = []
        self._seq = itertools.count()

    def call_repeating(self, interval_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        if interval_ms <= 0:
            raise ValueError("Interval must be positive")
        task = _ManualTask(next(self._seq), interval_ms, callback, self.now + interval_ms)
        self._tasks.append(task)
        return task

    @property
    def active_tasks(self) -> int:
        return sum(1 for t in self._tasks if not t.cancelled)

    def advance(self, ms: float) -> None:
        """Move the clock forward, firing every callback that falls due in order."""
        target = self.now + ms
        while True:
            due = [t for t in self._tasks if not t.cancelled and t.due <= target]
            if not due:
                break
            task = min(due, key=lambda t: (t.due, t.seq))
            self.now = task.due
            task.due += task.interval
            task.callback()
        self.now = target
        self._tasks = [t for t in self._tasks if not t.cancelled]
