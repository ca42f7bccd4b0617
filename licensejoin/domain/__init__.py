"""
Domain models for license join runs.
"""

from licensejoin.domain.license_join import MergedEvent, Record, RunSummary, UpdateEvent

__all__ = ["MergedEvent", "Record", "RunSummary", "UpdateEvent"]
