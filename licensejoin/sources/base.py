"""
licensejoin/sources/base.py

Source adapter abstraction and the live/replay origins behind it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import requests

from licensejoin.errors import SourceFetchError
from licensejoin.logging_utils import log_event

logger = logging.getLogger(__name__)


class PageArchive:
    """
    On-disk store of raw responses, laid out as `<root>/<source>/<name>`.

    Names come from remote data; a name that resolves outside its source
    folder raises SourceFetchError before anything is read or written.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, source: str, name: str, *, key: str | None = None) -> Path:
        folder = (self.root / source).resolve()
        path = (folder / name).resolve()
        if path == folder or not path.is_relative_to(folder):
            raise SourceFetchError(source, f"archive name {name!r} resolves outside {folder}", key=key)
        return path

    def exists(self, source: str, name: str) -> bool:
        return self.path_for(source, name).is_file()

    def write(self, source: str, name: str, text: str) -> Path:
        path = self.path_for(source, name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path


class Origin(ABC):
    """
    Where a source adapter's raw documents come from.
    """

    @abstractmethod
    def fetch_text(
        self,
        *,
        source: str,
        archive_name: str,
        url: str,
        params: dict[str, Any] | None = None,
        key: str | None = None,
    ) -> str:
        """
        Return the raw document for one request or raise SourceFetchError.
        """

    def available(self, *, source: str, archive_name: str) -> bool:
        """
        Whether a document can be requested at all.
        """

        return True


class LiveOrigin(Origin):
    """
    Fetch documents from the remote service and archive every raw response.

    Each call issues exactly one request; failed fetches are not retried.
    """

    def __init__(
        self,
        *,
        archive: PageArchive,
        api_token: str | None,
        user_agent: str,
        timeout_seconds: float,
        session: requests.Session | None = None,
        token_header: str = "X-App-Token",
    ) -> None:
        self._archive = archive
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._headers = {"User-Agent": user_agent}
        if api_token:
            self._headers[token_header] = api_token

    def fetch_text(
        self,
        *,
        source: str,
        archive_name: str,
        url: str,
        params: dict[str, Any] | None = None,
        key: str | None = None,
    ) -> str:
        self._archive.path_for(source, archive_name, key=key)
        try:
            response = self._session.get(
                url,
                params=params,
                headers=self._headers,
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            log_event(
                logger,
                logging.ERROR,
                "source_request_failed",
                source=source,
                key=key,
                url=url,
                status=status_code,
                error=str(exc),
            )
            raise SourceFetchError(source, f"request to {url} failed: {exc}", key=key) from exc

        text = response.text
        self._archive.write(source, archive_name, text)
        return text


class ReplayOrigin(Origin):
    """
    Read previously archived raw responses instead of calling the remote service.
    """

    def __init__(self, *, archive: PageArchive) -> None:
        self._archive = archive

    def fetch_text(
        self,
        *,
        source: str,
        archive_name: str,
        url: str,
        params: dict[str, Any] | None = None,
        key: str | None = None,
    ) -> str:
        path = self._archive.path_for(source, archive_name, key=key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise SourceFetchError(source, f"archived file not found: {path}", key=key) from exc
        except OSError as exc:
            raise SourceFetchError(source, f"archived file unreadable: {exc}", key=key) from exc

    def available(self, *, source: str, archive_name: str) -> bool:
        return self._archive.exists(source, archive_name)


class SourceAdapter(ABC):
    """
    Produces records for one named source from a live or replay origin.
    """

    name: str

    def __init__(self, *, name: str, origin: Origin) -> None:
        self.name = name
        self.origin = origin


class KeyedSourceAdapter(SourceAdapter):
    """
    Adapter fetched on demand, one entity key at a time.
    """

    @abstractmethod
    def fetch(self, key: str) -> dict[str, Any] | None:
        """
        Return the record for `key`, None when the source has no such entity.
        """
