"""Deliver fetch completions on the thread that owns the session.

The HTTP call runs on a worker thread, but the overlay operations mutate
engine state and must run where the host expects them. A host that already
calls back on its own thread can use ``InlineDispatcher``; otherwise use
``MainThreadDispatcher`` and call ``pump()`` once per tick.
"""
from __future__ import annotations

import logging
import queue
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Callable, Optional

log = logging.getLogger(__name__)

Task = Callable[[], None]


class Dispatcher(ABC):
    @abstractmethod
    def dispatch(self, task: Task) -> None:
        raise NotImplementedError


class InlineDispatcher(Dispatcher):
    """Runs the task immediately, on whichever thread finished the fetch."""

    def dispatch(self, task: Task) -> None:
        task()


class MainThreadDispatcher(Dispatcher):
    def __init__(self) -> None:
        self._q: "queue.Queue[Task]" = queue.Queue()

    def dispatch(self, task: Task) -> None:
        self._q.put(task)

    @property
    def pending(self) -> int:
        return self._q.qsize()

    def pump(self, max_tasks: Optional[int] = None) -> int:
        """Run queued completions on the calling thread. Returns how many ran."""
        ran = 0
        while max_tasks is None or ran < max_tasks:
            try:
                task = self._q.get_nowait()
            except queue.Empty:
                break
            try:
                task()
            finally:
                self._q.task_done()
            ran += 1
        return ran

    def pump_until(self, future: Future, timeout_s: float = 30.0) -> bool:
        """Pump until ``future`` is done or the timeout passes. Returns future.done()."""
        deadline = time.monotonic() + timeout_s
        while not future.done():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                log.warning("Timed out after %.1fs waiting for fetch completion", timeout_s)
                break
            try:
                task = self._q.get(timeout=min(remaining, 0.1))
            except queue.Empty:
                continue
            try:
                task()
            finally:
                self._q.task_done()
        return future.done()
