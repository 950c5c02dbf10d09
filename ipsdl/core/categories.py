"""
Fetches and caches the category tree of a board.
"""

import logging
from typing import Optional

from ipsdl.adapters.base import MarkupAdapter
from ipsdl.api.rate_limiter import RateLimiter
from ipsdl.api.session import BoardSession
from ipsdl.models.catalog import Category
from ipsdl.storage.cache import CategoryCache

log = logging.getLogger(__name__)


class CategoryIndex:
    """The flat or two-level category tree, cached on disk."""

    def __init__(
        self,
        session: BoardSession,
        adapter: MarkupAdapter,
        cache: CategoryCache,
        rate_limiter: RateLimiter,
    ):
        self.session = session
        self.adapter = adapter
        self.cache = cache
        self.rate_limiter = rate_limiter

    async def get(self, force_refresh: bool = False) -> list[Category]:
        """
        Returns all download categories.

        The cache is returned verbatim when present. Otherwise, or when
        `force_refresh` is set, the overview and every group page are crawled
        sequentially and the cache is overwritten.

        Raises:
            ExtractionError: If the adapter finds no categories where expected.
        """
        if not force_refresh and self.cache.exists():
            return self.cache.load()

        doc = await self.session.fetch_page(self.adapter.categories_url)
        group_urls = self.adapter.extract_category_groups(doc)

        if group_urls:
            categories: list[Category] = []
            for index, url in enumerate(group_urls):
                if index:
                    await self.rate_limiter.delay()
                group_doc = await self.session.fetch_page(url)
                categories.extend(self.adapter.extract_categories(group_doc))
        else:
            categories = self.adapter.extract_categories(doc)

        self.cache.save(categories)
        log.info(f"Fetched {len(categories)} categories.")
        return categories

    async def find_by_id(self, category_id: int) -> Optional[Category]:
        categories = await self.get()
        return next((c for c in categories if c.id == category_id), None)
