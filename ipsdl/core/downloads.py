"""
The main entry point for browsing a board's download catalog and downloading records.
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional, Union

from rich.markup import escape

from ipsdl.adapters import MarkupAdapter, get_adapter
from ipsdl.api.auth import Authenticator, get_authenticator
from ipsdl.api.rate_limiter import RateLimiter
from ipsdl.api.session import BoardSession
from ipsdl.exceptions import InvalidArgumentError
from ipsdl.media.streamer import FileStreamer
from ipsdl.models.catalog import (
    CatalogRecord,
    Category,
    CategoryKey,
    CategoryRef,
    category_key_from_ref,
)
from ipsdl.models.config import BoardConfig
from ipsdl.models.stats import DownloadStats
from ipsdl.storage.cache import CategoryCache, RecordCache
from ipsdl.utils.search import build_matcher, build_search_pattern, find_all, find_one

from .categories import CategoryIndex
from .fetcher import FetchOptions, PaginatedFetcher
from .resolver import DownloadOptions, DownloadResolver

log = logging.getLogger(__name__)


class Downloads:
    """Orchestrates category listing, record caching and downloads for one board."""

    def __init__(
        self,
        config: BoardConfig,
        session: Optional[BoardSession] = None,
        adapter: Optional[MarkupAdapter] = None,
        authenticator: Optional[Authenticator] = None,
        rate_limiter: Optional[RateLimiter] = None,
        stats: Optional[DownloadStats] = None,
    ):
        self.config = config
        self.session = session or BoardSession(config.url, cookie_path=config.cookie_path)
        self.adapter = adapter or get_adapter(config.version)
        self.authenticator = authenticator or get_authenticator(
            config.version,
            self.session,
            config.username,
            config.password,
            debug_dir=config.cache_dir,
        )
        self.rate_limiter = rate_limiter or RateLimiter(config.min_delay, config.max_delay)
        self.stats = stats or DownloadStats()

        self.categories = CategoryIndex(
            self.session,
            self.adapter,
            CategoryCache(config.category_cache_path),
            self.rate_limiter,
        )
        self.cache = RecordCache(config.file_cache_path)
        self.fetcher = PaginatedFetcher(self.session, self.adapter, self.rate_limiter)
        self.resolver = DownloadResolver(
            self.session,
            self.adapter,
            self.authenticator,
            self.cache,
            FileStreamer(self.stats),
            self.rate_limiter,
            debug_dir=config.cache_dir,
        )

    async def get_categories(self, force_refresh: bool = False) -> list[Category]:
        return await self.categories.get(force_refresh)

    async def find_category(
        self, query: str, force_refresh: bool = False
    ) -> Optional[Category]:
        """Returns the first category whose label matches the fuzzy `query`."""
        pattern = build_search_pattern(query)
        categories = await self.categories.get(force_refresh)
        return find_one(categories, lambda c: bool(pattern.search(c.label)))

    async def resolve_category(self, category: CategoryRef) -> CategoryKey:
        """
        Turns a category reference into an id and URL.

        A bare id is looked up in the category index.

        Raises:
            InvalidArgumentError: If the reference is malformed or the id is unknown.
        """
        key = category_key_from_ref(category)
        if isinstance(key, CategoryKey):
            return key
        match = await self.categories.find_by_id(key)
        if match is None:
            raise InvalidArgumentError(
                f"Unknown category {key}. Refresh the category list or pass a"
                " category object with an `url`."
            )
        return CategoryKey(id=match.id, url=match.url, label=match.label)

    async def get_files(
        self, category: CategoryRef, options: Optional[FetchOptions] = None
    ) -> list[CatalogRecord]:
        """
        Returns the records of a category.

        Cached records are returned unless `force_refresh` is set. Fetched
        records are merged into the cache, keeping data gathered by earlier
        downloads, and the cache is saved.

        Raises:
            InvalidArgumentError: If `category` is malformed. Checked before any request.
        """
        options = options or FetchOptions()
        key = category_key_from_ref(category)
        category_id = key if isinstance(key, int) else key.id

        cached = self.cache.load(category_id)
        if cached and not options.force_refresh:
            return cached

        if isinstance(key, int):
            key = await self.resolve_category(key)
        fetched = await self.fetcher.fetch(key, options=options)
        merged = self.cache.merge(category_id, fetched)
        self.cache.save()
        return merged

    async def find_file(
        self, query: str, category: CategoryRef, options: Optional[FetchOptions] = None
    ) -> Optional[CatalogRecord]:
        """Returns the first record whose title or description matches `query`."""
        matcher = build_matcher(query)
        return find_one(await self.get_files(category, options), matcher)

    async def find_files(
        self, query: str, category: CategoryRef, options: Optional[FetchOptions] = None
    ) -> list[CatalogRecord]:
        """Returns all records whose title or description matches `query`."""
        matcher = build_matcher(query)
        return find_all(await self.get_files(category, options), matcher)

    async def download(
        self,
        record: CatalogRecord,
        dest_folder: Union[str, Path],
        options: Optional[DownloadOptions] = None,
    ) -> list[Path]:
        """
        Downloads the file(s) of a single record.

        The record must come from `get_files()`, `find_file()` or
        `find_files()`. If the file it last produced already exists in
        `dest_folder`, nothing is requested. The cache is saved whether or
        not the download succeeds.

        Returns:
            The paths of the record's files in `dest_folder`.

        Raises:
            InvalidArgumentError: If the record is not in the cache.
        """
        options = options or DownloadOptions()
        dest_folder = Path(dest_folder)
        cached = self.cache.find(record.category, record.id)
        if cached is None:
            raise InvalidArgumentError(
                "Must provide a file retrieved from get_files(), find_files() or find_file()."
            )

        if cached.filename and (dest_folder / cached.filename).exists():
            log.info(
                f"[yellow]○ Skipping:[/] [dim]{escape(cached.filename)}[/dim] (already exists)"
            )
            self.stats.record_skip()
            return [dest_folder / cached.filename]

        await self.rate_limiter.delay(options.min_delay, options.max_delay)
        log.info(f"Downloading [bold]{escape(cached.title)}[/bold]...")
        try:
            paths = await self.resolver.resolve(cached, dest_folder, options)
        except Exception:
            self.stats.records_failed += 1
            raise
        finally:
            self.cache.save()

        if cached.broken:
            self.stats.records_broken += 1
        return paths

    async def download_all(
        self,
        records: Iterable[CatalogRecord],
        dest_folder: Union[str, Path],
        options: Optional[DownloadOptions] = None,
    ) -> dict[int, list[Path]]:
        """
        Downloads records one after another, with a random delay before each.

        Returns:
            The downloaded paths keyed by record id.
        """
        results: dict[int, list[Path]] = {}
        for record in records:
            results[record.id] = await self.download(record, dest_folder, options)
        self.cache.save()
        return results

    async def login(self) -> bool:
        return await self.authenticator.login()

    async def logout(self) -> bool:
        return await self.authenticator.logout()

    async def close(self) -> None:
        """Persists cookies and closes the HTTP sessions."""
        await self.session.close()

    async def __aenter__(self) -> "Downloads":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
