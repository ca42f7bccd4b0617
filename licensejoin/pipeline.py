"""
License join run orchestration.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from functools import partial

import requests

from licensejoin.config import LicenseJoinSettings
from licensejoin.correlation import CompletionMonitor, CorrelationEngine
from licensejoin.domain.license_join import RunSummary, UpdateEvent
from licensejoin.errors import SourceFetchError
from licensejoin.logging_utils import log_event
from licensejoin.scheduling import DispatchScheduler, create_scheduler
from licensejoin.sources import (
    CdcListingAdapter,
    KeyedSourceAdapter,
    LiveOrigin,
    Origin,
    PageArchive,
    ProfileAdapter,
    QuickSearchAdapter,
    ReplayOrigin,
    ZoneListAdapter,
)
from licensejoin.storage import CsvRowSink, RowSink

logger = logging.getLogger(__name__)

PRIMARY_SOURCES = ("cdc", "quicksearch", "profile")
SECONDARY_SOURCES = ("zones",)


class LicenseJoinPipeline:
    """
    Streams the listing feed and chains dependent lookups until every license is joined.

    Each primary source after the first is fetched once its predecessor
    has reported for a key, so the n-th primary record for a key schedules
    the fetch of the (n+1)-th. Scheduling the last one makes the key
    eligible for a full join.

    A dispatched task starts its fetch on a dedicated thread right away, so
    the scheduler's spacing is the spacing of remote requests and the
    number of fetches in flight is never capped.
    """

    def __init__(
        self,
        *,
        engine: CorrelationEngine,
        scheduler: DispatchScheduler,
        sink: RowSink,
        listing: CdcListingAdapter,
        dependents: Mapping[str, KeyedSourceAdapter],
        zones: ZoneListAdapter | None = None,
    ) -> None:
        primary = engine.primary_sources
        if listing.name != primary[0]:
            raise ValueError(f"Listing source '{listing.name}' must be the first primary source.")
        missing = [name for name in primary[1:] if name not in dependents]
        if missing:
            raise ValueError(f"No adapter configured for primary sources {missing}.")

        self._engine = engine
        self._scheduler = scheduler
        self._sink = sink
        self._listing = listing
        self._dependents = dict(dependents)
        self._zones = zones
        self._fetch_threads: list[threading.Thread] = []
        self._threads_lock = threading.Lock()
        self._requested: set[tuple[str, str]] = set()
        self.monitor = CompletionMonitor(
            engine=engine,
            base_source=primary[0],
            proxy_source=primary[-1],
            sink=sink,
        )
        engine.on_update(self._on_update)

    def run(self, *, timeout: float | None = None) -> RunSummary:
        try:
            self._load_zones()
            self._stream_listing()
            self.monitor.mark_exhausted()
            summary = self.monitor.wait(timeout)
        finally:
            self._scheduler.close()
            self._join_fetches()
            self._sink.close()

        log_event(
            logger,
            logging.ERROR if summary.had_errors else logging.INFO,
            "license_join_completed",
            elapsed_seconds=summary.elapsed_seconds,
            merged=summary.merged,
            unmatched=summary.unmatched,
            records_by_source=summary.records_by_source,
            error_count=len(summary.errors),
        )
        return summary

    def _load_zones(self) -> None:
        if self._zones is None:
            for name in self._engine.secondary_sources:
                self._engine.set_exhausted(name)
            return
        try:
            for zip_code, record in self._zones.stream():
                self._engine.update(self._zones.name, zip_code, record)
        except SourceFetchError as exc:
            self._report_failure(exc, source=self._zones.name)
        self._engine.set_exhausted(self._zones.name)

    def _stream_listing(self) -> None:
        try:
            for key, record in self._listing.stream():
                self._engine.update(self._listing.name, key, record)
        except SourceFetchError as exc:
            self._report_failure(exc, source=self._listing.name)

    def _on_update(self, event: UpdateEvent) -> None:
        primary = self._engine.primary_sources
        position = primary.index(event.source)
        next_position = position + 1
        if next_position >= len(primary) or event.hit_count != next_position:
            return

        next_source = primary[next_position]
        if (next_source, event.key) in self._requested:
            return
        self._requested.add((next_source, event.key))

        completes_join = next_position == len(primary) - 1
        if completes_join:
            self.monitor.expect_join()
        self.monitor.fetch_started()
        self._scheduler.schedule(partial(self._start_fetch, next_source, event.key, completes_join))

    def _start_fetch(self, source: str, key: str, completes_join: bool) -> None:
        thread = threading.Thread(
            target=self._run_fetch,
            args=(source, key, completes_join),
            name=f"licensejoin-fetch-{source}",
            daemon=True,
        )
        with self._threads_lock:
            self._fetch_threads = [t for t in self._fetch_threads if t.is_alive()]
            self._fetch_threads.append(thread)
        thread.start()

    def _join_fetches(self) -> None:
        with self._threads_lock:
            threads = list(self._fetch_threads)
            self._fetch_threads.clear()
        for thread in threads:
            thread.join()

    def _run_fetch(self, source: str, key: str, completes_join: bool) -> None:
        adapter = self._dependents[source]
        try:
            record = adapter.fetch(key)
            if record is None:
                log_event(logger, logging.INFO, "license_not_found", source=source, key=key)
                if completes_join:
                    self.monitor.abandon_join()
                return
            self._engine.update(source, key, record)
        except SourceFetchError as exc:
            self._report_failure(exc, source=source, key=key)
            if completes_join:
                self.monitor.abandon_join()
        except Exception as exc:
            logger.exception("Unexpected failure handling %s fetch for %s", source, key)
            self.monitor.record_error(exc)
            if completes_join:
                self.monitor.abandon_join()
        finally:
            self.monitor.fetch_settled()

    def _report_failure(self, exc: SourceFetchError, *, source: str, key: str | None = None) -> None:
        log_event(
            logger,
            logging.ERROR,
            "source_fetch_failed",
            source=source,
            key=key,
            error=str(exc),
        )
        self.monitor.record_error(exc)


def build_origin(settings: LicenseJoinSettings, *, session: requests.Session | None = None) -> Origin:
    archive = PageArchive(settings.archive_dir)
    if settings.is_live:
        return LiveOrigin(
            archive=archive,
            api_token=settings.api_token,
            user_agent=settings.user_agent,
            timeout_seconds=settings.timeout_seconds,
            session=session,
        )
    return ReplayOrigin(archive=archive)


def build_pipeline(
    settings: LicenseJoinSettings,
    *,
    session: requests.Session | None = None,
    sink: RowSink | None = None,
) -> LicenseJoinPipeline:
    """
    Construct a pipeline and all of its collaborators for one run.
    """

    settings.validate()
    origin = build_origin(settings, session=session)
    engine = CorrelationEngine(
        primary_sources=PRIMARY_SOURCES,
        secondary_sources=SECONDARY_SOURCES,
    )
    return LicenseJoinPipeline(
        engine=engine,
        scheduler=create_scheduler(
            mode=settings.mode,
            min_delay_seconds=settings.dispatch_delay_seconds,
        ),
        sink=sink or CsvRowSink(path=settings.output_path),
        listing=CdcListingAdapter(
            origin=origin,
            url=settings.cdc_url,
            page_size=settings.cdc_page_size,
        ),
        dependents={
            "quicksearch": QuickSearchAdapter(origin=origin, base_url=settings.board_base_url),
            "profile": ProfileAdapter(origin=origin, base_url=settings.board_base_url),
        },
        zones=ZoneListAdapter(path=settings.zones_path) if settings.zones_path else None,
    )
