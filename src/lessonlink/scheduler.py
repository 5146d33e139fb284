"""Deferred presentation tasks on a virtual millisecond clock."""

from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


@dataclass(order=True)
class ScheduledTask:
    """One pending callback ordered by due time, then insertion order."""

    due_ms: int
    seq: int
    callback: Callback = field(compare=False)
    label: str = field(default="", compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class TaskScheduler:
    """Single-threaded timer queue driven explicitly by ``advance``.

    Nothing runs on its own: the host (a UI loop, the CLI, or a test) decides
    when time passes. Callbacks scheduled while advancing run in the same
    ``advance`` call if they fall due before its end.
    """

    def __init__(self) -> None:
        self._now_ms = 0
        self._queue: list[ScheduledTask] = []
        self._counter = itertools.count()

    @property
    def now_ms(self) -> int:
        return self._now_ms

    @property
    def pending(self) -> int:
        return sum(1 for task in self._queue if not task.cancelled)

    def call_later(self, delay_ms: int, callback: Callback, label: str = "") -> ScheduledTask:
        """Queue ``callback`` to run ``delay_ms`` after the current time."""
        task = ScheduledTask(self._now_ms + max(0, int(delay_ms)), next(self._counter), callback, label)
        heapq.heappush(self._queue, task)
        return task

    def advance(self, delta_ms: int) -> int:
        """Move the clock forward, running every task that falls due. Returns tasks run."""
        target = self._now_ms + max(0, int(delta_ms))
        ran = 0
        while self._queue and self._queue[0].due_ms <= target:
            task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self._now_ms = task.due_ms
            logger.debug("Running deferred task %s at %dms", task.label or "<anon>", self._now_ms)
            task.callback()
            ran += 1
        self._now_ms = target
        return ran

    def run_all(self, limit: int = 10_000) -> int:
        """Drain the queue regardless of due times."""
        ran = 0
        while self._queue and ran < limit:
            head = self._queue[0]
            if head.cancelled:
                heapq.heappop(self._queue)
                continue
            ran += self.advance(head.due_ms - self._now_ms)
        return ran

    def cancel_all(self) -> None:
        for task in self._queue:
            task.cancel()
        self._queue.clear()
