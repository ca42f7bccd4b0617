"""
BeautifulSoup-based parsing layer for licensing board pages.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from bs4 import BeautifulSoup, Tag

DATE_PATTERNS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
]

PROFILE_LABELS: dict[str, str] = {
    "license number": "license_number",
    "license no": "license_number",
    "business name": "business_name",
    "entity": "entity_type",
    "entity type": "entity_type",
    "license status": "license_status",
    "status": "license_status",
    "classifications": "classifications",
    "classification": "classifications",
    "issue date": "issue_date",
    "expire date": "expiration_date",
    "expiration date": "expiration_date",
    "contractor's bond": "bond_amount",
    "bond amount": "bond_amount",
    "workers' compensation": "workers_comp",
    "workers compensation": "workers_comp",
}

DATE_FIELDS = {"issue_date", "expiration_date"}

QUICKSEARCH_COLUMNS: dict[str, str] = {
    "license-number": "license_number",
    "business-name": "business_name",
    "status": "license_status",
    "entity-type": "entity_type",
    "city": "city",
}


def normalize_license_number(value: object) -> str:
    """
    Canonical form of a license number: stripped, upper-cased, no inner spaces.
    """

    return re.sub(r"\s+", "", str(value or "")).upper()


class LicensePageParser:
    """
    Deterministic parsers for quick-search result and profile pages.
    """

    @classmethod
    def parse_quicksearch(cls, *, html: str, license_number: str) -> dict[str, Any] | None:
        """
        Return the result row matching `license_number`, or None when not listed.
        """

        soup = BeautifulSoup(html, "html.parser")
        wanted = normalize_license_number(license_number)
        for row in soup.select("tr.result"):
            record = cls._quicksearch_row(row)
            if normalize_license_number(record.get("license_number")) == wanted:
                record["license_number"] = wanted
                return record
        return None

    @classmethod
    def parse_profile(cls, *, html: str, license_number: str) -> dict[str, Any] | None:
        """
        Return the labelled profile fields, or None when the page has no profile.
        """

        soup = BeautifulSoup(html, "html.parser")
        container = soup.select_one("#profile") or soup
        pairs = cls._definition_pairs(container)
        if not pairs:
            return None

        record: dict[str, Any] = {}
        for label, node in pairs:
            field_name = PROFILE_LABELS.get(cls._normalize_label(label))
            if field_name is None:
                continue
            value = cls._definition_value(node)
            if field_name in DATE_FIELDS:
                value = cls.parse_date(value) or value
            record[field_name] = value

        heading = container.select_one(".business-name")
        if heading is not None and "business_name" not in record:
            record["business_name"] = cls._clean_text(heading.get_text(" ", strip=True))

        found = normalize_license_number(record.get("license_number", license_number))
        if found != normalize_license_number(license_number):
            return None
        record["license_number"] = found
        return record

    @classmethod
    def parse_date(cls, value: str) -> str | None:
        compact = cls._clean_text(value)
        for pattern in DATE_PATTERNS:
            try:
                return datetime.strptime(compact, pattern).date().isoformat()
            except ValueError:
                continue
        return None

    @classmethod
    def _quicksearch_row(cls, row: Tag) -> dict[str, Any]:
        record: dict[str, Any] = {}
        for cell in row.find_all("td"):
            classes = cell.get("class") or []
            for css_class in classes:
                field_name = QUICKSEARCH_COLUMNS.get(css_class)
                if field_name is not None:
                    record[field_name] = cls._clean_text(cell.get_text(" ", strip=True))
        return record

    @staticmethod
    def _definition_pairs(container: Tag) -> list[tuple[str, Tag]]:
        pairs: list[tuple[str, Tag]] = []
        for term in container.find_all("dt"):
            definition = term.find_next_sibling("dd")
            if definition is None:
                continue
            pairs.append((term.get_text(" ", strip=True), definition))
        return pairs

    @classmethod
    def _definition_value(cls, node: Tag) -> str:
        items = [cls._clean_text(item.get_text(" ", strip=True)) for item in node.find_all("li")]
        items = [item for item in items if item]
        if items:
            return "; ".join(items)
        return cls._clean_text(node.get_text(" ", strip=True))

    @classmethod
    def _normalize_label(cls, label: str) -> str:
        return cls._clean_text(label).rstrip(":").lower()

    @staticmethod
    def _clean_text(value: str) -> str:
        return re.sub(r"\s+", " ", value).strip()
