"""
Shared fixtures for license join tests.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import requests

from licensejoin.domain.license_join import Record
from licensejoin.storage.base import RowSink
from license_pages import PROFILE_TEMPLATE, QUICKSEARCH_TEMPLATE


class RecordingSink(RowSink):
    """
    In-memory sink that keeps every written record.
    """

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.closed = False
        self._lock = threading.Lock()

    def write(self, record: Record) -> None:
        with self._lock:
            self.rows.append(dict(record))

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def quicksearch_html() -> Callable[..., str]:
    def _build(license_number: str, business_name: str = "Acme Builders", status: str = "Active") -> str:
        return QUICKSEARCH_TEMPLATE.format(
            license_number=license_number,
            business_name=business_name,
            status=status,
        )

    return _build


@pytest.fixture()
def profile_html() -> Callable[..., str]:
    def _build(license_number: str, business_name: str = "ACME BUILDERS INC") -> str:
        return PROFILE_TEMPLATE.format(license_number=license_number, business_name=business_name)

    return _build


@pytest.fixture()
def listing_rows() -> list[dict[str, Any]]:
    return [
        {
            "license_no": "L1",
            "business_name": "Acme Builders",
            "address": "1 Main St",
            "city": "Sacramento",
            "zip": "95814-1234",
            "county": "Sacramento",
        },
        {
            "license_no": "L2",
            "business_name": "Bolt Electric",
            "address": "2 Oak Ave",
            "city": "Fresno",
            "zip": "93721",
            "county": "Fresno",
        },
        {
            "license_no": "L3",
            "business_name": "Cedar Roofing",
            "address": "3 Pine Rd",
            "city": "Chico",
            "zip": "95926",
            "county": "Butte",
        },
    ]


@pytest.fixture()
def write_archive() -> Callable[[Path, str, str, str], Path]:
    def _write(root: Path, source: str, name: str, content: str) -> Path:
        path = root / source / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def write_listing_page(write_archive: Callable[[Path, str, str, str], Path]) -> Callable[..., Path]:
    def _write(root: Path, rows: list[dict[str, Any]], page_number: int = 1) -> Path:
        return write_archive(root, "cdc", f"page-{page_number:04d}.json", json.dumps(rows))

    return _write


class StubSession:
    """
    Minimal stand-in for requests.Session routing GETs through a handler.

    The handler receives `(url, params)` and returns `(status_code, text)`
    or raises a requests exception.
    """

    def __init__(self, handler: Callable[[str, dict[str, Any] | None], tuple[int, str]]) -> None:
        self._handler = handler
        self.calls: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        with self._lock:
            self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        status_code, text = self._handler(url, params)
        response = requests.Response()
        response.status_code = status_code
        response._content = text.encode("utf-8")
        response.encoding = "utf-8"
        response.url = url
        return response


@pytest.fixture()
def stub_session() -> type[StubSession]:
    return StubSession
