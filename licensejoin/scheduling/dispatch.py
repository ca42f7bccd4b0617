"""
Dispatch schedulers for dependent source fetches.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from licensejoin.config import MODE_LIVE, MODE_REPLAY
from licensejoin.logging_utils import log_event

logger = logging.getLogger(__name__)

Task = Callable[[], object]

_STOP = object()


class DispatchScheduler(ABC):
    """
    Serializes fetch-initiating tasks.
    """

    @abstractmethod
    def schedule(self, task: Task) -> None:
        """
        Queue or run one zero-argument task.
        """

    def close(self) -> None:
        """
        Release scheduler resources once no more tasks will be scheduled.
        """


class ImmediateScheduler(DispatchScheduler):
    """
    Invokes each task synchronously; used when replaying archived data.
    """

    def schedule(self, task: Task) -> None:
        _dispatch(task)


class RateLimitedScheduler(DispatchScheduler):
    """
    FIFO dispatcher enforcing a minimum delay between successive dispatches.

    One worker pops a task, invokes it, sleeps the configured delay and pops
    the next one. It never waits for whatever asynchronous work the task
    started, so this bounds the dispatch rate only: a slow remote call can
    leave several fetches in flight at once.
    """

    def __init__(
        self,
        *,
        min_delay_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_delay_seconds = max(0.0, min_delay_seconds)
        self._clock = clock
        self._sleep = sleep
        self._queue: queue.Queue[object] = queue.Queue()
        self._worker: threading.Thread | None = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def min_delay_seconds(self) -> float:
        return self._min_delay_seconds

    def schedule(self, task: Task) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("Scheduler is closed.")
            self._ensure_worker()
            self._queue.put(task)

    def close(self) -> None:
        """
        Stop the worker after every already-queued task has been dispatched.
        """

        with self._lock:
            if self._closed:
                return
            self._closed = True
            worker = self._worker
            if worker is None:
                return
            self._queue.put(_STOP)
        worker.join()

    def _ensure_worker(self) -> None:
        if self._worker is not None:
            return
        self._worker = threading.Thread(
            target=self._run,
            name="licensejoin-dispatch",
            daemon=True,
        )
        self._worker.start()

    def _run(self) -> None:
        while True:
            task = self._queue.get()
            if task is _STOP:
                return
            dispatched_at = self._clock()
            log_event(
                logger,
                logging.DEBUG,
                "record_dispatched",
                queued=self._queue.qsize(),
                dispatched_at=dispatched_at,
            )
            _dispatch(task)
            self._sleep(self._min_delay_seconds)


def _dispatch(task: Task) -> None:
    try:
        task()
    except Exception as exc:
        log_event(
            logger,
            logging.ERROR,
            "task_dispatch_failed",
            task=getattr(task, "__name__", repr(task)),
            error=str(exc),
        )


def create_scheduler(*, mode: str, min_delay_seconds: float) -> DispatchScheduler:
    """
    Build the scheduler for a run mode: rate-limited when live, immediate on replay.
    """

    if mode == MODE_LIVE:
        return RateLimitedScheduler(min_delay_seconds=min_delay_seconds)
    if mode == MODE_REPLAY:
        return ImmediateScheduler()
    raise ValueError(f"Unknown scheduler mode '{mode}'.")
