"""
Error taxonomy for the license join pipeline.
"""

from __future__ import annotations


class UnknownSourceError(KeyError):
    """
    Raised when an engine operation names a source that was never registered.
    """

    def __init__(self, source: str) -> None:
        super().__init__(source)
        self.source = source

    def __str__(self) -> str:
        return f"Unknown source '{self.source}'"


class SourceFetchError(RuntimeError):
    """
    Raised when a source adapter cannot produce data for one fetch.
    """

    def __init__(self, source: str, message: str, *, key: str | None = None) -> None:
        detail = f"{source}: {message}" if key is None else f"{source}[{key}]: {message}"
        super().__init__(detail)
        self.source = source
        self.key = key


class UnreconciledRecordWarning(UserWarning):
    """
    Issued when base records never completed their join and were flushed as-is.
    """
