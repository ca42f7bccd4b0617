"""
Keyed multi-source join with partial-progress and completion events.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from licensejoin.domain.license_join import MergedEvent, Record, UpdateEvent
from licensejoin.errors import UnknownSourceError
from licensejoin.logging_utils import log_event

logger = logging.getLogger(__name__)

UpdateListener = Callable[[UpdateEvent], None]
MergedListener = Callable[[MergedEvent], None]


class CorrelationEngine:
    """
    Stores the latest record per (source, key) and joins keys across primary sources.

    A key merges exactly once, the first time every primary source holds a
    record for it. Merged field maps are combined in primary declaration
    order, so on a field name collision the later source's value wins.

    All state is guarded by one re-entrant lock and listeners run while it
    is held, so every reaction to an update happens on a single sequential
    timeline even when fetch results arrive from worker threads.
    """

    def __init__(
        self,
        *,
        primary_sources: Sequence[str],
        secondary_sources: Sequence[str] = (),
    ) -> None:
        primary = [name.strip() for name in primary_sources]
        secondary = [name.strip() for name in secondary_sources]
        if not primary:
            raise ValueError("At least one primary source is required.")
        names = [*primary, *secondary]
        if any(not name for name in names):
            raise ValueError("Source names must be non-empty.")
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate source names in {names}.")

        self._primary_sources = tuple(primary)
        self._secondary_sources = tuple(secondary)
        self._primary_set = frozenset(primary)
        self._records: dict[str, dict[str, Record]] = {name: {} for name in names}
        self._exhausted: set[str] = set()
        self._hit_counts: dict[str, int] = {}
        self._merged_keys: set[str] = set()
        self._merged_count = 0
        self._update_listeners: list[UpdateListener] = []
        self._merged_listeners: list[MergedListener] = []
        self._lock = threading.RLock()

    @property
    def primary_sources(self) -> tuple[str, ...]:
        return self._primary_sources

    @property
    def secondary_sources(self) -> tuple[str, ...]:
        return self._secondary_sources

    @property
    def merged_count(self) -> int:
        with self._lock:
            return self._merged_count

    def on_update(self, listener: UpdateListener) -> None:
        """
        Register a listener for every primary-source store.
        """

        with self._lock:
            self._update_listeners.append(listener)

    def on_merged(self, listener: MergedListener) -> None:
        """
        Register a listener for completed joins.
        """

        with self._lock:
            self._merged_listeners.append(listener)

    def update(self, source: str, key: str, record: Record) -> None:
        """
        Store `record` for `(source, key)` and evaluate the key's primary join.
        """

        with self._lock:
            stored = self._storage_for(source)
            is_new = key not in stored
            stored[key] = record
            if source not in self._primary_set:
                return

            if is_new:
                self._hit_counts[key] = self._hit_counts.get(key, 0) + 1
            hit_count = self._hit_counts[key]

            update_event = UpdateEvent(source=source, key=key, record=record, hit_count=hit_count)
            for listener in list(self._update_listeners):
                listener(update_event)

            if hit_count < len(self._primary_sources) or key in self._merged_keys:
                return

            self._merged_keys.add(key)
            self._merged_count += 1
            merged_event = MergedEvent(key=key, record=self._build_merged(key))
            log_event(
                logger,
                logging.DEBUG,
                "record_merged",
                key=key,
                merged_count=self._merged_count,
            )
            for listener in list(self._merged_listeners):
                listener(merged_event)

    def get(self, source: str, key: str) -> Record | None:
        with self._lock:
            return self._records.get(source, {}).get(key)

    def has(self, source: str, key: str) -> bool:
        with self._lock:
            return key in self._records.get(source, {})

    def ids(self, source: str) -> tuple[str, ...]:
        """
        Return a snapshot of the keys currently stored for `source`.
        """

        with self._lock:
            return tuple(self._storage_for(source))

    def set_exhausted(self, source: str) -> None:
        with self._lock:
            self._storage_for(source)
            if source in self._exhausted:
                return
            self._exhausted.add(source)
        log_event(logger, logging.INFO, "source_exhausted", source=source)

    def is_exhausted(self, source: str) -> bool:
        with self._lock:
            return source in self._exhausted

    def is_merged(self, key: str) -> bool:
        with self._lock:
            return key in self._merged_keys

    def hit_count(self, key: str) -> int:
        with self._lock:
            return self._hit_counts.get(key, 0)

    def _storage_for(self, source: str) -> dict[str, Record]:
        stored = self._records.get(source)
        if stored is None:
            raise UnknownSourceError(source)
        return stored

    def _build_merged(self, key: str) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for source in self._primary_sources:
            merged.update(self._records[source][key])
        return merged
