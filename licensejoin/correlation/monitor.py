"""
Run completion tracking and end-of-run leftover reconciliation.
"""

from __future__ import annotations

import logging
import threading
import time
import warnings
from collections.abc import Callable

from licensejoin.correlation.engine import CorrelationEngine
from licensejoin.domain.license_join import MergedEvent, RunSummary
from licensejoin.errors import UnreconciledRecordWarning
from licensejoin.logging_utils import log_event
from licensejoin.storage.base import RowSink

logger = logging.getLogger(__name__)


class CompletionMonitor:
    """
    Decides when a run is finished and flushes base records whose join never completed.

    The run is complete once the base source is exhausted, the engine has
    merged at least as many keys as were expected to join, and no dependent
    fetch is still pending. Completion is evaluated after each of those
    signals; the leftover flush runs exactly once, after completion, and
    never per update.
    """

    def __init__(
        self,
        *,
        engine: CorrelationEngine,
        base_source: str,
        proxy_source: str,
        sink: RowSink,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine
        self._base_source = base_source
        self._proxy_source = proxy_source
        self._sink = sink
        self._clock = clock
        self._started_at = clock()

        self._exhausted = False
        self._expected_joins = 0
        self._pending_fetches = 0
        self._errors: list[str] = []
        self._completed = False
        self._summary: RunSummary | None = None
        self._done = threading.Event()
        self._lock = threading.Lock()

        engine.on_merged(self._on_merged)

    @property
    def expected_joins(self) -> int:
        with self._lock:
            return self._expected_joins

    @property
    def pending_fetches(self) -> int:
        with self._lock:
            return self._pending_fetches

    @property
    def had_errors(self) -> bool:
        with self._lock:
            return bool(self._errors)

    @property
    def is_complete(self) -> bool:
        return self._done.is_set()

    def mark_exhausted(self) -> None:
        """
        Record end-of-stream for the base source.
        """

        self._engine.set_exhausted(self._base_source)
        with self._lock:
            self._exhausted = True
        self.check()

    def expect_join(self) -> None:
        with self._lock:
            self._expected_joins += 1

    def abandon_join(self) -> None:
        """
        Withdraw one expected join whose completing fetch failed or found nothing.
        """

        with self._lock:
            self._expected_joins = max(0, self._expected_joins - 1)
        self.check()

    def fetch_started(self) -> None:
        with self._lock:
            self._pending_fetches += 1

    def fetch_settled(self) -> None:
        with self._lock:
            self._pending_fetches = max(0, self._pending_fetches - 1)
        self.check()

    def record_error(self, error: BaseException | str) -> None:
        with self._lock:
            self._errors.append(str(error))

    def check(self) -> bool:
        """
        Evaluate the completion rule and finalize the run the first time it holds.
        """

        # Read outside our lock: merged listeners call in here holding the engine lock.
        merged_count = self._engine.merged_count
        with self._lock:
            if self._completed:
                return True
            if not self._exhausted or self._pending_fetches > 0:
                return False
            if merged_count < self._expected_joins:
                return False
            self._completed = True

        self._finalize()
        return True

    def wait(self, timeout: float | None = None) -> RunSummary:
        """
        Block until the run completes and return its summary.
        """

        if not self._done.wait(timeout):
            raise TimeoutError(f"Run did not complete within {timeout} seconds.")
        if self._summary is None:
            raise RuntimeError("Run completed without a summary.")
        return self._summary

    def _on_merged(self, event: MergedEvent) -> None:
        self._sink.write(event.record)
        self.check()

    def _finalize(self) -> None:
        unmatched = self._flush_leftovers()
        engine = self._engine
        sources = [*engine.primary_sources, *engine.secondary_sources]
        with self._lock:
            errors = list(self._errors)
        self._summary = RunSummary(
            elapsed_seconds=round(self._clock() - self._started_at, 3),
            records_by_source={source: len(engine.ids(source)) for source in sources},
            merged=engine.merged_count,
            unmatched=unmatched,
            errors=errors,
        )
        self._done.set()

    def _flush_leftovers(self) -> int:
        unmatched: list[str] = []
        for key in self._engine.ids(self._base_source):
            if self._engine.has(self._proxy_source, key):
                continue
            record = self._engine.get(self._base_source, key)
            if record is None:
                continue
            self._sink.write(record)
            unmatched.append(key)
            log_event(
                logger,
                logging.INFO,
                "unreconciled_record",
                key=key,
                source=self._base_source,
                hit_count=self._engine.hit_count(key),
            )

        if unmatched:
            warnings.warn(
                f"{len(unmatched)} {self._base_source} record(s) never completed their join "
                "and were written unmerged.",
                UnreconciledRecordWarning,
                stacklevel=2,
            )
        return len(unmatched)
