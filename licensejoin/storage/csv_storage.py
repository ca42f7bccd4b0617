"""
CSV-backed sink for joined license rows.
"""

from __future__ import annotations

import csv
import threading
from pathlib import Path
from typing import TextIO

from licensejoin.domain.license_join import Record
from licensejoin.schemas.output_row import LICENSE_ROW_FIELDS, LicenseRow
from licensejoin.storage.base import RowSink


class CsvRowSink(RowSink):
    """
    Validate records against the row schema and append them to a CSV file.
    """

    def __init__(self, *, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._handle: TextIO | None = self._path.open("w", encoding="utf-8", newline="")
        self._writer = csv.DictWriter(self._handle, fieldnames=list(LICENSE_ROW_FIELDS))
        self._writer.writeheader()
        self._rows_written = 0
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def rows_written(self) -> int:
        return self._rows_written

    def write(self, record: Record) -> None:
        row = LicenseRow.model_validate(dict(record))
        with self._lock:
            if self._handle is None:
                raise RuntimeError(f"Sink for {self._path} is closed.")
            self._writer.writerow(row.as_csv_row())
            self._handle.flush()
            self._rows_written += 1

    def close(self) -> None:
        with self._lock:
            if self._handle is None:
                return
            self._handle.close()
            self._handle = None
