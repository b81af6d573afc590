"""Deferred callbacks and background save dispatch."""

import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable


class Scheduler(ABC):
    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        raise NotImplementedError


class ThreadingScheduler(Scheduler):
    """Runs each callback on a daemon ``threading.Timer``."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()


class InlineScheduler(Scheduler):
    """Ignores the delay and runs the callback right away."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        callback()


class SaveDispatcher(ABC):
    @abstractmethod
    def submit(self, job: Callable[[], None]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Block until submitted jobs have finished."""


class InlineSaveDispatcher(SaveDispatcher):
    def submit(self, job: Callable[[], None]) -> None:
        job()


class BackgroundSaveDispatcher(SaveDispatcher):
    """Single worker thread, so saves reach the store in submission order."""

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="graph-save")

    def submit(self, job: Callable[[], None]) -> None:
        self._executor.submit(job)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
