"""
Source adapter exports.
"""

from licensejoin.sources.base import (
    KeyedSourceAdapter,
    LiveOrigin,
    Origin,
    PageArchive,
    ReplayOrigin,
    SourceAdapter,
)
from licensejoin.sources.board import ProfileAdapter, QuickSearchAdapter
from licensejoin.sources.cdc import CdcListingAdapter
from licensejoin.sources.zones import ZoneListAdapter

__all__ = [
    "CdcListingAdapter",
    "KeyedSourceAdapter",
    "LiveOrigin",
    "Origin",
    "PageArchive",
    "ProfileAdapter",
    "QuickSearchAdapter",
    "ReplayOrigin",
    "SourceAdapter",
    "ZoneListAdapter",
]
