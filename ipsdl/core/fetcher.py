"""
Walks the result pages of a category and collects its records.
"""

import logging
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ipsdl.adapters.base import MarkupAdapter
from ipsdl.api.rate_limiter import RateLimiter
from ipsdl.api.session import BoardSession
from ipsdl.models.catalog import CatalogRecord, CategoryKey, RecordPage

log = logging.getLogger(__name__)


@dataclass
class FetchOptions:
    """Options for listing a category. Delays are in milliseconds."""

    force_refresh: bool = False
    first_page_only: bool = False
    sort_key: str = "file_name"
    sort_order: str = "asc"
    per_page: Optional[int] = None
    min_delay: Optional[int] = None
    max_delay: Optional[int] = None


class PaginatedFetcher:
    """
    Fetches listing pages one at a time. Pages are never requested
    concurrently, since page numbers depend on the sort order of the session.
    """

    def __init__(
        self, session: BoardSession, adapter: MarkupAdapter, rate_limiter: RateLimiter
    ):
        self.session = session
        self.adapter = adapter
        self.rate_limiter = rate_limiter

    def page_url(self, category_url: str, page: int, options: FetchOptions) -> str:
        """Builds the URL of one listing page, keeping the category's own query."""
        parts = urlsplit(category_url)
        query = dict(parse_qsl(parts.query))
        query.update(
            self.adapter.listing_params(
                page, options.sort_key, options.sort_order, options.per_page
            )
        )
        return urlunsplit(parts._replace(query=urlencode(query)))

    async def iter_pages(
        self,
        category: CategoryKey,
        page: int = 1,
        options: Optional[FetchOptions] = None,
    ) -> AsyncIterator[RecordPage]:
        """
        Yields one `RecordPage` per listing page, starting at `page`.

        Stops after the first page when `first_page_only` is set, or once the
        page count reported by the board is reached. Waits a random delay
        before each following page.
        """
        options = options or FetchOptions()
        while True:
            log.info(f"Fetching page {page} for {category.label or category.id}.")
            doc = await self.session.fetch_page(self.page_url(category.url, page, options))
            result = self.adapter.extract_page_of_records(doc)
            yield result

            if options.first_page_only or page >= result.page_count:
                return
            await self.rate_limiter.delay(options.min_delay, options.max_delay)
            page += 1

    async def fetch(
        self,
        category: CategoryKey,
        page: int = 1,
        options: Optional[FetchOptions] = None,
        accumulated: Optional[list[CatalogRecord]] = None,
    ) -> list[CatalogRecord]:
        """Fetches all records of a category, appended to `accumulated`."""
        records = list(accumulated or [])
        started = time.monotonic()
        async for result in self.iter_pages(category, page, options):
            records.extend(result.records)
        log.info(
            f"Fetched {len(records)} items in {time.monotonic() - started:.1f} seconds."
        )
        return records
