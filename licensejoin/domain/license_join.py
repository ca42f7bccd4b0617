"""
licensejoin/domain/license_join.py

Domain models shared by the correlation engine, monitor and pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

Record = Mapping[str, Any]


@dataclass(frozen=True)
class UpdateEvent:
    """
    One stored primary record and the key's primary hit count after the store.
    """

    source: str
    key: str
    record: Record
    hit_count: int


@dataclass(frozen=True)
class MergedEvent:
    """
    A key whose primary join just completed.
    """

    key: str
    record: dict[str, Any]


@dataclass(frozen=True)
class RunSummary:
    """
    Outcome for one license join run.
    """

    elapsed_seconds: float
    records_by_source: dict[str, int]
    merged: int
    unmatched: int
    errors: list[str] = field(default_factory=list)

    @property
    def had_errors(self) -> bool:
        return bool(self.errors)
