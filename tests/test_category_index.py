"""Unit tests for CategoryIndex."""

from __future__ import annotations

from pathlib import Path

import pytest

from fakes import BOARD_URL, FakeSession, RecordingRateLimiter
from ipsdl.adapters import IPS3Adapter, IPS4Adapter
from ipsdl.core.categories import CategoryIndex
from ipsdl.exceptions import ExtractionError
from ipsdl.models.catalog import Category
from ipsdl.storage.cache import CategoryCache

GROUPS_PAGE = f"""
<html><body>
  <div class="ipsBox">
    <ol>
      <li class="ipsDataItem"><h4 class="ipsDataItem_title"><a href="{BOARD_URL}/files/category/1-media/">Media</a></h4></li>
      <li class="ipsDataItem"><h4 class="ipsDataItem_title"><a href="{BOARD_URL}/files/category/2-docs/">Docs</a></h4></li>
    </ol>
  </div>
</body></html>
"""


def side_menu(categories: list[tuple[int, str, int]]) -> str:
    items = "".join(
        f'<li><a href="{BOARD_URL}/files/category/{cid}-{label.lower()}/?s=abc123">'
        f'{label} <span class="ipsBadge">{count}</span></a></li>'
        for cid, label, count in categories
    )
    return f'<html><body><ul class="ipsSideMenu_list">{items}</ul></body></html>'


IPS3_PAGE = f"""
<html><body>
  <ul id="idm_categories">
    <li><a href="#" class="cat_toggle" title="Toggle">+</a>
        <a href="{BOARD_URL}/index.php?app=downloads&amp;showcat=5" title="Wallpapers">Wallpapers</a></li>
    <li><a href="{BOARD_URL}/index.php?app=downloads&amp;showcat=6" title="Themes">Themes</a></li>
  </ul>
</body></html>
"""


@pytest.fixture()
def cache(tmp_path: Path) -> CategoryCache:
    return CategoryCache(tmp_path / "board-categories.json")


def serve_ips4(session: FakeSession) -> None:
    session.pages[IPS4Adapter.categories_url] = GROUPS_PAGE
    session.pages[f"{BOARD_URL}/files/category/1-media/"] = side_menu(
        [(10, "Pictures", 12), (11, "Videos", 3)]
    )
    session.pages[f"{BOARD_URL}/files/category/2-docs/"] = side_menu([(20, "Manuals", 7)])


class TestCategoryIndex:
    @pytest.mark.asyncio
    async def test_crawls_groups_sequentially(
        self, session: FakeSession, rate_limiter: RecordingRateLimiter, cache: CategoryCache
    ) -> None:
        serve_ips4(session)
        index = CategoryIndex(session, IPS4Adapter(), cache, rate_limiter)

        categories = await index.get()

        assert [(c.id, c.label) for c in categories] == [
            (10, "Pictures"),
            (11, "Videos"),
            (20, "Manuals"),
        ]
        assert categories[0].url == f"{BOARD_URL}/files/category/10-pictures/"
        assert session.requests == [
            IPS4Adapter.categories_url,
            f"{BOARD_URL}/files/category/1-media/",
            f"{BOARD_URL}/files/category/2-docs/",
        ]
        assert len(rate_limiter.waits) == 1

    @pytest.mark.asyncio
    async def test_returns_cache_without_requests(
        self, session: FakeSession, rate_limiter: RecordingRateLimiter, cache: CategoryCache
    ) -> None:
        cache.save([Category(id=3, label="Cached", url=f"{BOARD_URL}/files/category/3-cached/")])
        index = CategoryIndex(session, IPS4Adapter(), cache, rate_limiter)

        categories = await index.get()

        assert [c.label for c in categories] == ["Cached"]
        assert session.requests == []

    @pytest.mark.asyncio
    async def test_force_refresh_overwrites_cache(
        self, session: FakeSession, rate_limiter: RecordingRateLimiter, cache: CategoryCache
    ) -> None:
        cache.save([Category(id=3, label="Cached", url=f"{BOARD_URL}/files/category/3-cached/")])
        serve_ips4(session)
        index = CategoryIndex(session, IPS4Adapter(), cache, rate_limiter)

        await index.get(force_refresh=True)

        assert [c.id for c in cache.load()] == [10, 11, 20]

    @pytest.mark.asyncio
    async def test_flat_category_tree(
        self, session: FakeSession, rate_limiter: RecordingRateLimiter, cache: CategoryCache
    ) -> None:
        session.pages[IPS3Adapter.categories_url] = IPS3_PAGE
        index = CategoryIndex(session, IPS3Adapter(), cache, rate_limiter)

        categories = await index.get()

        assert [(c.id, c.label) for c in categories] == [(5, "Wallpapers"), (6, "Themes")]
        assert session.requests == [IPS3Adapter.categories_url]
        assert rate_limiter.waits == []

    @pytest.mark.asyncio
    async def test_missing_markup_is_an_extraction_error(
        self, session: FakeSession, rate_limiter: RecordingRateLimiter, cache: CategoryCache
    ) -> None:
        session.pages[IPS4Adapter.categories_url] = "<html><body></body></html>"
        index = CategoryIndex(session, IPS4Adapter(), cache, rate_limiter)

        with pytest.raises(ExtractionError):
            await index.get()

        assert not cache.exists()

    @pytest.mark.asyncio
    async def test_find_by_id(
        self, session: FakeSession, rate_limiter: RecordingRateLimiter, cache: CategoryCache
    ) -> None:
        serve_ips4(session)
        index = CategoryIndex(session, IPS4Adapter(), cache, rate_limiter)

        assert (await index.find_by_id(20)).label == "Manuals"
        assert await index.find_by_id(99) is None
