"""
Paged JSON licensee listing feed; the streaming base source of a run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import Any

from licensejoin.domain.license_join import Record
from licensejoin.errors import SourceFetchError
from licensejoin.logging_utils import log_event
from licensejoin.parsing import normalize_license_number
from licensejoin.sources.base import Origin, SourceAdapter

logger = logging.getLogger(__name__)

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "license_number": ("license_number", "license_no", "licenseno"),
    "business_name": ("business_name", "businessname", "name"),
    "address": ("address", "street_address", "mailing_address"),
    "city": ("city",),
    "zip_code": ("zip_code", "zip", "zipcode"),
    "county": ("county",),
}


class CdcListingAdapter(SourceAdapter):
    """
    Stream listing rows page by page until a short page marks the end of the feed.
    """

    def __init__(
        self,
        *,
        origin: Origin,
        url: str,
        page_size: int,
        name: str = "cdc",
    ) -> None:
        super().__init__(name=name, origin=origin)
        self._url = url
        self._page_size = max(1, page_size)

    def stream(self) -> Iterator[tuple[str, Record]]:
        page_number = 1
        while True:
            archive_name = f"page-{page_number:04d}.json"
            if page_number > 1 and not self.origin.available(
                source=self.name, archive_name=archive_name
            ):
                return

            text = self.origin.fetch_text(
                source=self.name,
                archive_name=archive_name,
                url=self._url,
                params={
                    "$limit": self._page_size,
                    "$offset": (page_number - 1) * self._page_size,
                    "$order": "license_number",
                },
            )
            rows = self._decode_page(text, page_number=page_number)
            for row in rows:
                record = self.normalize_row(row)
                if record is None:
                    log_event(
                        logger,
                        logging.WARNING,
                        "listing_row_skipped",
                        source=self.name,
                        page=page_number,
                        reason="missing license number",
                    )
                    continue
                yield record["license_number"], record

            if len(rows) < self._page_size:
                return
            page_number += 1

    @staticmethod
    def normalize_row(row: dict[str, Any]) -> dict[str, Any] | None:
        lowered = {str(name).strip().lower(): value for name, value in row.items()}
        record: dict[str, Any] = {}
        for field_name, aliases in FIELD_ALIASES.items():
            for alias in aliases:
                value = lowered.get(alias)
                if value is not None and str(value).strip():
                    record[field_name] = str(value).strip()
                    break

        license_number = normalize_license_number(record.get("license_number"))
        if not license_number:
            return None
        record["license_number"] = license_number
        if "zip_code" in record:
            record["zip_code"] = record["zip_code"][:5]
        return record

    def _decode_page(self, text: str, *, page_number: int) -> list[dict[str, Any]]:
        try:
            payload = json.loads(text)
        except ValueError as exc:
            raise SourceFetchError(self.name, f"page {page_number} is not valid JSON") from exc
        if not isinstance(payload, list):
            raise SourceFetchError(self.name, f"page {page_number} must be a JSON array")
        return [row for row in payload if isinstance(row, dict)]
