"""
Per-license lookups against the licensing board's public pages.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from licensejoin.parsing import LicensePageParser
from licensejoin.sources.base import KeyedSourceAdapter, Origin


class QuickSearchAdapter(KeyedSourceAdapter):
    """
    License status and entity type from the board's quick-search results.
    """

    def __init__(self, *, origin: Origin, base_url: str, name: str = "quicksearch") -> None:
        super().__init__(name=name, origin=origin)
        self._url = f"{base_url.rstrip('/')}/onlineservices/quicksearch"

    def fetch(self, key: str) -> dict[str, Any] | None:
        html = self.origin.fetch_text(
            source=self.name,
            archive_name=f"{key}.html",
            url=self._url,
            params={"licenseNumber": key},
            key=key,
        )
        return LicensePageParser.parse_quicksearch(html=html, license_number=key)


class ProfileAdapter(KeyedSourceAdapter):
    """
    Classifications, dates, bond and workers' comp from the license profile page.
    """

    def __init__(self, *, origin: Origin, base_url: str, name: str = "profile") -> None:
        super().__init__(name=name, origin=origin)
        self._base_url = base_url.rstrip("/")

    def fetch(self, key: str) -> dict[str, Any] | None:
        html = self.origin.fetch_text(
            source=self.name,
            archive_name=f"{key}.html",
            url=f"{self._base_url}/onlineservices/profile/{quote(key)}",
            key=key,
        )
        return LicensePageParser.parse_profile(html=html, license_number=key)
