"""
Data Models.

Pydantic models for catalog data and board configuration, plus session statistics.
"""

from .catalog import (
    CatalogRecord,
    Category,
    CategoryKey,
    CategoryRef,
    FileEntry,
    InfoField,
    RecordDetails,
    RecordPage,
)
from .config import BoardConfig, BoardVersion
from .stats import DownloadStats

__all__ = [
    "BoardConfig",
    "BoardVersion",
    "CatalogRecord",
    "Category",
    "CategoryKey",
    "CategoryRef",
    "DownloadStats",
    "FileEntry",
    "InfoField",
    "RecordDetails",
    "RecordPage",
]
