"""Unit tests for the Downloads facade."""

from __future__ import annotations

from pathlib import Path

import pytest

from fakes import (
    BOARD_URL,
    FakeAuthenticator,
    FakeBinaryStream,
    FakeSession,
    RecordingRateLimiter,
    listing_page,
    make_record,
    overview_page,
    text_reply,
)
from ipsdl.adapters import IPS4Adapter
from ipsdl.core import DownloadOptions, Downloads, FetchOptions
from ipsdl.exceptions import InvalidArgumentError, QuotaExceededError
from ipsdl.models.catalog import Category
from ipsdl.models.config import BoardConfig
from ipsdl.storage.cache import CategoryCache, RecordCache

CATEGORY = Category(id=7, label="Funny Pictures", url=f"{BOARD_URL}/files/category/7-funny-pictures/")
OTHER = Category(id=8, label="Serious Documents", url=f"{BOARD_URL}/files/category/8-serious-documents/")


@pytest.fixture()
def downloads(
    board_config: BoardConfig,
    session: FakeSession,
    authenticator: FakeAuthenticator,
    rate_limiter: RecordingRateLimiter,
) -> Downloads:
    CategoryCache(board_config.category_cache_path).save([CATEGORY, OTHER])
    return Downloads(
        board_config,
        session=session,
        adapter=IPS4Adapter(),
        authenticator=authenticator,
        rate_limiter=rate_limiter,
    )


def serve_category(downloads: Downloads, session: FakeSession, records: list[tuple[int, str]]) -> str:
    url = downloads.fetcher.page_url(CATEGORY.url, 1, FetchOptions())
    session.pages[url] = listing_page(records)
    return url


# ======================================================================
# Categories
# ======================================================================


class TestCategories:
    @pytest.mark.asyncio
    async def test_get_categories_uses_cache(self, downloads, session) -> None:
        categories = await downloads.get_categories()

        assert [c.id for c in categories] == [7, 8]
        assert session.requests == []

    @pytest.mark.asyncio
    async def test_find_category_is_fuzzy(self, downloads) -> None:
        assert (await downloads.find_category("fun pics")).id == 7
        assert (await downloads.find_category("SERIOUS")).id == 8
        assert await downloads.find_category("videos") is None

    @pytest.mark.asyncio
    async def test_resolve_unknown_id(self, downloads) -> None:
        with pytest.raises(InvalidArgumentError):
            await downloads.resolve_category(99)


# ======================================================================
# Files
# ======================================================================


class TestGetFiles:
    @pytest.mark.parametrize("ref", ["7", None, True, 1.5, {"id": 7}, {"url": ""}, {"url": f"{BOARD_URL}/files/"}])
    @pytest.mark.asyncio
    async def test_invalid_reference_fails_before_network(self, downloads, session, ref) -> None:
        with pytest.raises(InvalidArgumentError):
            await downloads.get_files(ref)

        assert session.requests == []

    @pytest.mark.asyncio
    async def test_fetches_by_id_and_caches(self, downloads, session, board_config) -> None:
        url = serve_category(downloads, session, [(1, "Funny Cats"), (2, "Dull Dogs")])

        records = await downloads.get_files(7)

        assert [r.id for r in records] == [1, 2]
        assert all(r.category == 7 for r in records)
        assert session.requests == [url]
        assert [r.id for r in RecordCache(board_config.file_cache_path).load(7)] == [1, 2]

    @pytest.mark.asyncio
    async def test_accepts_category_objects(self, downloads, session) -> None:
        serve_category(downloads, session, [(1, "Funny Cats")])

        by_model = await downloads.get_files(CATEGORY)
        by_mapping = await downloads.get_files({"id": 7, "url": CATEGORY.url})
        by_url = await downloads.get_files({"url": CATEGORY.url})

        assert [r.id for r in by_model] == [r.id for r in by_mapping] == [r.id for r in by_url] == [1]

    @pytest.mark.asyncio
    async def test_cached_files_need_no_requests(self, downloads, session) -> None:
        serve_category(downloads, session, [(1, "Funny Cats")])
        await downloads.get_files(7)
        session.requests.clear()

        records = await downloads.get_files(7)

        assert [r.id for r in records] == [1]
        assert session.requests == []

    @pytest.mark.asyncio
    async def test_refresh_keeps_enriched_data(self, downloads, session) -> None:
        serve_category(downloads, session, [(1, "Funny Cats")])
        record = (await downloads.get_files(7))[0]
        record.filename = "cats.zip"
        downloads.cache.save()

        serve_category(downloads, session, [(1, "Funny Cats"), (2, "Funny Dogs")])
        records = await downloads.get_files(7, FetchOptions(force_refresh=True))

        assert [r.id for r in records] == [1, 2]
        assert records[0].filename == "cats.zip"

    @pytest.mark.asyncio
    async def test_find_file_and_files(self, downloads, session) -> None:
        serve_category(downloads, session, [(1, "Funny Cats"), (2, "Dull Dogs"), (3, "Funny Dogs")])

        found = await downloads.find_file("funny dogs", 7)
        matches = await downloads.find_files("funny", 7)

        assert found.id == 3
        assert [r.id for r in matches] == [1, 3]
        assert await downloads.find_file("nothing like this", 7) is None


# ======================================================================
# Downloads
# ======================================================================


def serve_download(session: FakeSession, record_id: int, filename: str) -> None:
    download_url = f"{BOARD_URL}/files/file/{record_id}-file/?do=download"
    session.pages[f"{BOARD_URL}/files/file/{record_id}-file/"] = overview_page(download_url)
    session.downloads[download_url] = [FakeBinaryStream(filename, [filename.encode()])]


class TestDownload:
    @pytest.mark.asyncio
    async def test_rejects_records_not_from_cache(self, downloads, session, tmp_path) -> None:
        with pytest.raises(InvalidArgumentError):
            await downloads.download(make_record(1), tmp_path)

        assert session.requests == []

    @pytest.mark.asyncio
    async def test_downloads_and_skips_existing_file(
        self, downloads, session, rate_limiter, tmp_path: Path
    ) -> None:
        serve_category(downloads, session, [(1, "Funny Cats")])
        record = (await downloads.get_files(7))[0]
        serve_download(session, 1, "cats.zip")

        first = await downloads.download(record, tmp_path)
        requests_after_first = len(session.requests)
        second = await downloads.download(record, tmp_path)

        assert first == second == [tmp_path / "cats.zip"]
        assert len(session.requests) == requests_after_first
        assert len(session.download_requests) == 1
        assert downloads.stats.files_downloaded == 1
        assert downloads.stats.files_skipped_exists == 1
        assert len(rate_limiter.waits) == 1

    @pytest.mark.asyncio
    async def test_download_all_is_sequential_with_delays(
        self, downloads, session, rate_limiter, tmp_path: Path
    ) -> None:
        serve_category(downloads, session, [(1, "Funny Cats"), (2, "Funny Dogs")])
        records = await downloads.get_files(7)
        serve_download(session, 1, "cats.zip")
        serve_download(session, 2, "dogs.zip")

        results = await downloads.download_all(records, tmp_path)

        assert results == {1: [tmp_path / "cats.zip"], 2: [tmp_path / "dogs.zip"]}
        assert len(rate_limiter.waits) == 2
        assert downloads.cache.find(7, 2).filename == "dogs.zip"

    @pytest.mark.asyncio
    async def test_failure_is_counted_and_cache_saved(
        self, downloads, session, board_config, tmp_path: Path
    ) -> None:
        serve_category(downloads, session, [(1, "Funny Cats")])
        record = (await downloads.get_files(7))[0]
        download_url = f"{BOARD_URL}/files/file/1-file/?do=download"
        session.pages[record.url] = overview_page(download_url, description="Fresh text")
        session.downloads[download_url] = [
            text_reply("You have exceeded the maximum number of downloads allotted to you for the day")
        ]

        with pytest.raises(QuotaExceededError):
            await downloads.download(record, tmp_path, DownloadOptions())

        assert downloads.stats.records_failed == 1
        reloaded = RecordCache(board_config.file_cache_path).find(7, 1)
        assert reloaded.description == "Fresh text"

    @pytest.mark.asyncio
    async def test_broken_record_is_counted(self, downloads, session, tmp_path: Path) -> None:
        serve_category(downloads, session, [(1, "Funny Cats")])
        record = (await downloads.get_files(7))[0]
        session.pages[record.url] = overview_page(f"{BOARD_URL}/files/file/1-file/?do=download")

        assert await downloads.download(record, tmp_path) == []
        assert downloads.stats.records_broken == 1
        assert downloads.cache.find(7, 1).broken is True


class TestSession:
    @pytest.mark.asyncio
    async def test_context_manager_closes_session(self, downloads, session) -> None:
        async with downloads:
            pass

        assert session.closed

    @pytest.mark.asyncio
    async def test_login_and_logout_delegate(self, downloads, authenticator) -> None:
        assert await downloads.login() is True
        assert await downloads.logout() is True
        assert authenticator.login_calls == 1
        assert authenticator.logout_calls == 1
