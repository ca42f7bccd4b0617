"""
Storage layer interfaces for joined license rows.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from licensejoin.domain.license_join import Record


class RowSink(ABC):
    """
    Append-only destination for output rows.
    """

    @abstractmethod
    def write(self, record: Record) -> None:
        """
        Append one record as an output row.
        """

    def close(self) -> None:
        """
        Flush and release any underlying resources.
        """
