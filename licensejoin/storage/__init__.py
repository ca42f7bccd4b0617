"""
Storage layer exports.
"""

from licensejoin.storage.base import RowSink
from licensejoin.storage.csv_storage import CsvRowSink

__all__ = ["CsvRowSink", "RowSink"]
