"""
tests/test_completion_monitor.py

Completion rule and end-of-run leftover reconciliation.
"""

from __future__ import annotations

import pytest

from licensejoin.correlation import CompletionMonitor, CorrelationEngine
from licensejoin.errors import SourceFetchError, UnreconciledRecordWarning


@pytest.fixture()
def engine() -> CorrelationEngine:
    return CorrelationEngine(primary_sources=["cdc", "quicksearch", "profile"])


@pytest.fixture()
def monitor(engine, sink) -> CompletionMonitor:
    return CompletionMonitor(
        engine=engine,
        base_source="cdc",
        proxy_source="profile",
        sink=sink,
    )


def _join(engine: CorrelationEngine, key: str) -> None:
    engine.update("cdc", key, {"license_number": key, "source": "cdc"})
    engine.update("quicksearch", key, {"license_status": "Active"})
    engine.update("profile", key, {"source": "profile"})


class TestCompletionRule:
    def test_incomplete_until_base_source_is_exhausted(self, engine, monitor) -> None:
        engine.update("cdc", "L1", {"a": 1})
        assert monitor.check() is False
        assert not monitor.is_complete

    def test_incomplete_while_expected_joins_are_outstanding(self, engine, monitor, sink) -> None:
        engine.update("cdc", "L1", {"license_number": "L1"})
        monitor.expect_join()
        monitor.mark_exhausted()

        assert not monitor.is_complete

        engine.update("quicksearch", "L1", {"license_status": "Active"})
        engine.update("profile", "L1", {"classifications": "B"})

        assert monitor.is_complete
        assert sink.rows == [
            {"license_number": "L1", "license_status": "Active", "classifications": "B"}
        ]

    def test_incomplete_while_fetches_are_pending(self, engine, monitor) -> None:
        monitor.fetch_started()
        monitor.mark_exhausted()
        assert not monitor.is_complete

        monitor.fetch_settled()
        assert monitor.is_complete

    def test_abandoned_join_allows_completion(self, engine, monitor) -> None:
        engine.update("cdc", "L1", {"license_number": "L1"})
        monitor.expect_join()
        monitor.mark_exhausted()
        assert not monitor.is_complete

        with pytest.warns(UnreconciledRecordWarning):
            monitor.abandon_join()

        assert monitor.is_complete
        assert monitor.expected_joins == 0

    def test_empty_run_completes_on_exhaustion(self, engine, monitor, sink) -> None:
        monitor.mark_exhausted()

        summary = monitor.wait(timeout=1)
        assert summary.merged == 0
        assert summary.unmatched == 0
        assert sink.rows == []
        assert engine.is_exhausted("cdc")


class TestLeftoverFlush:
    def test_unmatched_base_record_is_flushed_exactly_once(self, engine, monitor, sink) -> None:
        engine.update("cdc", "L2", {"a": 9})

        with pytest.warns(UnreconciledRecordWarning):
            monitor.mark_exhausted()
        monitor.check()
        monitor.check()

        assert sink.rows == [{"a": 9}]
        assert monitor.wait(timeout=1).unmatched == 1

    def test_merged_keys_are_not_flushed(self, engine, monitor, sink) -> None:
        monitor.expect_join()
        _join(engine, "L1")
        engine.update("cdc", "L2", {"license_number": "L2"})

        with pytest.warns(UnreconciledRecordWarning):
            monitor.mark_exhausted()

        summary = monitor.wait(timeout=1)
        assert summary.merged == 1
        assert summary.unmatched == 1
        assert sink.rows[0]["source"] == "profile"
        assert sink.rows[1] == {"license_number": "L2"}

    def test_partial_join_is_flushed_as_raw_base_record(self, engine, monitor, sink) -> None:
        engine.update("cdc", "L3", {"license_number": "L3", "county": "Butte"})
        engine.update("quicksearch", "L3", {"license_status": "Expired"})

        with pytest.warns(UnreconciledRecordWarning):
            monitor.mark_exhausted()

        assert sink.rows == [{"license_number": "L3", "county": "Butte"}]


class TestSummary:
    def test_errors_mark_the_run(self, engine, monitor) -> None:
        monitor.record_error(SourceFetchError("quicksearch", "timed out", key="L1"))
        monitor.mark_exhausted()

        summary = monitor.wait(timeout=1)
        assert summary.had_errors
        assert summary.errors == ["quicksearch[L1]: timed out"]
        assert monitor.had_errors

    def test_counts_records_by_source(self, engine, monitor) -> None:
        monitor.expect_join()
        _join(engine, "L1")
        monitor.mark_exhausted()

        summary = monitor.wait(timeout=1)
        assert summary.records_by_source == {"cdc": 1, "quicksearch": 1, "profile": 1}
        assert not summary.had_errors

    def test_wait_times_out(self, engine, monitor) -> None:
        with pytest.raises(TimeoutError):
            monitor.wait(timeout=0.01)
