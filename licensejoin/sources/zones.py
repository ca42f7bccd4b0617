"""
Local zip-code to geographic-zone list, loaded as a secondary source.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator
from pathlib import Path

from licensejoin.domain.license_join import Record
from licensejoin.errors import SourceFetchError


class ZoneListAdapter:
    """
    Read `zip_code,zone` rows from a CSV file.
    """

    def __init__(self, *, path: str | Path, name: str = "zones") -> None:
        self.name = name
        self._path = Path(path)

    def stream(self) -> Iterator[tuple[str, Record]]:
        try:
            handle = self._path.open("r", encoding="utf-8", newline="")
        except OSError as exc:
            raise SourceFetchError(self.name, f"cannot open {self._path}: {exc}") from exc

        with handle:
            try:
                for row in csv.DictReader(handle):
                    zip_code = (row.get("zip_code") or "").strip()[:5]
                    if not zip_code:
                        continue
                    yield zip_code, {"zip_code": zip_code, "zone": (row.get("zone") or "").strip()}
            except csv.Error as exc:
                raise SourceFetchError(self.name, f"malformed CSV in {self._path}: {exc}") from exc
