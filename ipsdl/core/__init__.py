"""
Core Logic Layer.

This package orchestrates category listing, paginated record fetching and
the download resolution of records.
"""

from .categories import CategoryIndex
from .downloads import Downloads
from .fetcher import FetchOptions, PaginatedFetcher
from .resolver import DownloadOptions, DownloadResolver, ResolutionState

__all__ = [
    "CategoryIndex",
    "DownloadOptions",
    "DownloadResolver",
    "Downloads",
    "FetchOptions",
    "PaginatedFetcher",
    "ResolutionState",
]
