"""
Fuzzy, case-insensitive matching of free-text queries against catalog data.

Every character of the query may be followed by any run of characters, so
"fun pics" becomes `f.*?u.*?n.*?p.*?i.*?c.*?s`. It matches "Funny Pictures"
but not "Serious Documents".
"""

import re
from collections.abc import Callable, Iterable
from typing import Optional, TypeVar

from ipsdl.models.catalog import CatalogRecord

T = TypeVar("T")

_UNSAFE_CHARS_REGEX = re.compile(r"[^a-z0-9\s_-]+", re.IGNORECASE)
_WHITESPACE_REGEX = re.compile(r"\s+")


def build_search_pattern(query: str) -> re.Pattern[str]:
    """Compiles a query into a case-insensitive subsequence pattern."""
    cleaned = _WHITESPACE_REGEX.sub("", _UNSAFE_CHARS_REGEX.sub("", query))
    return re.compile(".*?".join(re.escape(c) for c in cleaned), re.IGNORECASE)


def build_matcher(query: str) -> Callable[[CatalogRecord], bool]:
    """Returns a predicate matching records by title or description."""
    pattern = build_search_pattern(query)

    def matches(record: CatalogRecord) -> bool:
        return bool(
            pattern.search(record.title or "")
            or pattern.search(record.description or "")
        )

    return matches


def find_one(items: Iterable[T], predicate: Callable[[T], bool]) -> Optional[T]:
    """Returns the first item in stored order that satisfies the predicate."""
    return next((item for item in items if predicate(item)), None)


def find_all(items: Iterable[T], predicate: Callable[[T], bool]) -> list[T]:
    return [item for item in items if predicate(item)]
