"""Unit tests for the IPS 3 and IPS 4 markup adapters."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from bs4 import BeautifulSoup

from fakes import BOARD_URL, confirmation_page, listing_page, overview_page, record_url
from ipsdl.adapters import IPS3Adapter, IPS4Adapter, get_adapter, html_to_markdown, parse_page_count
from ipsdl.exceptions import ExtractionError
from ipsdl.models.config import BoardVersion


def soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestGetAdapter:
    def test_by_version(self) -> None:
        assert isinstance(get_adapter(BoardVersion.IPS4), IPS4Adapter)
        assert isinstance(get_adapter("ips3"), IPS3Adapter)


class TestHelpers:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("Page 2 of 17", 17), ("1 of 3", 3), ("", 1), ("Next page", 1)],
    )
    def test_parse_page_count(self, text: str, expected: int) -> None:
        assert parse_page_count(text) == expected

    def test_html_to_markdown(self) -> None:
        element = soup("<div><p>Hello <strong>world</strong></p><span>tail</span></div>").div
        text = html_to_markdown(element)
        assert text.startswith("Hello **world**")
        assert text.endswith("tail")
        assert "<" not in text

    def test_html_to_markdown_none(self) -> None:
        assert html_to_markdown(None) == ""


# ======================================================================
# IPS 4
# ======================================================================


class TestIPS4Listing:
    adapter = IPS4Adapter()

    def test_extracts_rows(self) -> None:
        page = self.adapter.extract_page_of_records(
            soup(listing_page([(12, "Funny Cats"), (13, "Dull Dogs")], page=1, pages=4))
        )

        assert page.page_count == 4
        first = page.records[0]
        assert first.id == 12
        assert first.url == record_url(12)
        assert first.title == "Funny Cats"
        assert first.description == "About Funny Cats"
        assert first.author == "bob"
        assert first.downloads == 1234
        assert first.views == 56
        assert first.date == datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert [r.id for r in page.records] == [12, 13]

    def test_no_pagination_means_one_page(self) -> None:
        page = self.adapter.extract_page_of_records(soup(listing_page([(1, "Only")])))
        assert page.page_count == 1

    def test_empty_listing(self) -> None:
        page = self.adapter.extract_page_of_records(soup('<ol class="ipsDataList"></ol>'))
        assert page.records == []

    def test_row_without_link_is_an_extraction_error(self) -> None:
        html = '<ol class="ipsDataList"><li class="ipsDataItem"><p>broken</p></li></ol>'
        with pytest.raises(ExtractionError):
            self.adapter.extract_page_of_records(soup(html))

    def test_listing_params(self) -> None:
        assert self.adapter.listing_params(3, "file_name", "asc", None) == {
            "sortby": "file_name",
            "sortdirection": "asc",
            "page": 3,
        }
        assert self.adapter.listing_params(1, "file_downloads", "desc", 25)["perpage"] == 25


class TestIPS4Categories:
    adapter = IPS4Adapter()

    def test_groups_strip_session(self) -> None:
        html = (
            f'<div class="ipsBox"><h4 class="ipsDataItem_title">'
            f'<a href="{BOARD_URL}/files/category/1-media/?s=deadbeef">Media</a></h4></div>'
        )
        assert self.adapter.extract_category_groups(soup(html)) == [
            f"{BOARD_URL}/files/category/1-media/"
        ]

    def test_missing_groups(self) -> None:
        with pytest.raises(ExtractionError):
            self.adapter.extract_category_groups(soup("<p>nothing</p>"))

    def test_categories_drop_badges(self) -> None:
        html = (
            '<ul class="ipsSideMenu_list"><li>'
            f'<a href="{BOARD_URL}/files/category/42-icons/">Icons <span class="ipsBadge">9</span></a>'
            "</li></ul>"
        )
        [category] = self.adapter.extract_categories(soup(html))
        assert (category.id, category.label) == (42, "Icons")

    def test_missing_categories(self) -> None:
        with pytest.raises(ExtractionError):
            self.adapter.extract_categories(soup("<p>nothing</p>"))


class TestIPS4Details:
    adapter = IPS4Adapter()

    def test_needs_login(self) -> None:
        assert self.adapter.needs_login(soup(overview_page("/d", signed_in=False)))
        assert not self.adapter.needs_login(soup(overview_page("/d")))

    def test_record_details(self) -> None:
        details = self.adapter.extract_record_details(soup(overview_page("/d", description="Nice")))

        assert details.description == "Nice"
        assert [(f.name, f.value) for f in details.info] == [
            ("Submitted", "01/02/2020"),
            ("File Size", "1.5 MB"),
        ]

    def test_download_link(self) -> None:
        link = self.adapter.extract_download_link(soup(overview_page(f"{BOARD_URL}/d?do=download")))
        assert link == f"{BOARD_URL}/d?do=download"

    def test_missing_download_link(self) -> None:
        with pytest.raises(ExtractionError, match="download button"):
            self.adapter.extract_download_link(soup("<a class='ipsButton'>Nope</a>"))

    def test_file_listing(self) -> None:
        listing = self.adapter.extract_file_listing(
            soup(confirmation_page([("a.zip", f"{BOARD_URL}/d/1"), ("b.zip", f"{BOARD_URL}/d/2")]))
        )

        assert [(f.filename, f.url, f.info) for f in listing] == [
            ("a.zip", f"{BOARD_URL}/d/1", "1 MB"),
            ("b.zip", f"{BOARD_URL}/d/2", "1 MB"),
        ]

    def test_file_listing_empty(self) -> None:
        assert self.adapter.extract_file_listing(soup("<p>no files</p>")) == []


# ======================================================================
# IPS 3
# ======================================================================


class TestIPS3:
    adapter = IPS3Adapter()

    def test_categories(self) -> None:
        html = (
            '<ul id="idm_categories">'
            '<li><a href="#" class="cat_toggle" title="Toggle">+</a>'
            f'<a href="{BOARD_URL}/index.php?app=downloads&amp;showcat=3" title="Maps">Maps</a></li>'
            f'<li><a href="{BOARD_URL}/index.php?app=downloads&amp;showcat=4">No title</a></li>'
            "</ul>"
        )
        [category] = self.adapter.extract_categories(soup(html))
        assert (category.id, category.label) == (3, "Maps")
        assert self.adapter.extract_category_groups(soup(html)) == []

    def test_missing_categories(self) -> None:
        with pytest.raises(ExtractionError):
            self.adapter.extract_categories(soup("<ul id='idm_categories'></ul>"))

    def test_listing_is_not_supported(self) -> None:
        with pytest.raises(NotImplementedError):
            self.adapter.extract_page_of_records(soup("<p></p>"))
        with pytest.raises(NotImplementedError):
            self.adapter.listing_params(1, "file_name", "asc", None)
