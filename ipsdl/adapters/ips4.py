"""
Markup adapter for IPS 4 boards (the `/files/` application).
"""

import logging
import re
from datetime import datetime
from typing import Any, Optional

from bs4 import Tag

from ipsdl.exceptions import ExtractionError
from ipsdl.models.catalog import (
    CatalogRecord,
    Category,
    FileEntry,
    InfoField,
    RecordDetails,
    RecordPage,
)
from ipsdl.utils.formatting import parse_count
from ipsdl.utils.path import parse_id_from_url, strip_session_param

from .base import Document, MarkupAdapter, html_to_markdown

log = logging.getLogger(__name__)

_PAGE_OF_REGEX = re.compile(r"\d+\s+of\s+(\d+)", re.I)
_DOWNLOADS_REGEX = re.compile(r"([\d,]+)\s+downloads", re.I)
_VIEWS_REGEX = re.compile(r"([\d,]+)\s+views", re.I)
_VIEW_PREFIX_REGEX = re.compile(r"^View the file\s+", re.I)


def parse_page_count(text: str) -> int:
    """Reads the total from a "Page X of Y" indicator, defaulting to one page."""
    match = _PAGE_OF_REGEX.search(text or "")
    return int(match.group(1)) if match else 1


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        log.debug(f"Ignoring unparseable date '{value}'.")
        return None


def _text(element: Optional[Tag]) -> str:
    return element.get_text(" ", strip=True) if element is not None else ""


class IPS4Adapter(MarkupAdapter):
    """Selectors for the IPS 4 downloads application."""

    categories_url = "/files/categories/"

    def extract_category_groups(self, doc: Document) -> list[str]:
        links = doc.select(".ipsBox .ipsDataItem_title > a[href]")
        if not links:
            raise ExtractionError("Could not find category groups on the categories page.")
        return [strip_session_param(a["href"]) for a in links]

    def extract_categories(self, doc: Document) -> list[Category]:
        links = doc.select(".ipsSideMenu_list > li > a[href]")
        if not links:
            raise ExtractionError("Could not find categories in the side menu.")

        categories = []
        for a in links:
            url = strip_session_param(a["href"])
            for badge in a.select(".ipsBadge"):
                badge.decompose()
            categories.append(
                Category(id=parse_id_from_url(url), label=_text(a), url=url)
            )
        return categories

    def listing_params(
        self, page: int, sort_key: str, sort_order: str, per_page: Optional[int]
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "sortby": sort_key,
            "sortdirection": sort_order,
            "page": page,
        }
        if per_page:
            params["perpage"] = per_page
        return params

    def extract_page_of_records(self, doc: Document) -> RecordPage:
        page_jump = doc.select_one(".ipsPagination li.ipsPagination_pageJump a")
        page_count = parse_page_count(_text(page_jump))

        records = [
            self._parse_row(row) for row in doc.select(".ipsDataList > .ipsDataItem")
        ]
        return RecordPage(records=records, page_count=page_count)

    def _parse_row(self, row: Tag) -> CatalogRecord:
        link = row.select_one(".ipsDataItem_title .ipsContained a[href]")
        if link is None:
            raise ExtractionError("Could not find the title link of a listing row.")
        url = strip_session_param(link["href"])

        title_link = row.select_one(".ipsDataItem_title a")
        title = title_link.get("title") if title_link is not None else None
        title = _VIEW_PREFIX_REGEX.sub("", title or _text(link))

        downloads = None
        icon = row.select_one(".ipsDataItem_main > p.ipsType_normal i.fa-arrow-circle-down")
        if icon is not None and icon.parent is not None:
            match = _DOWNLOADS_REGEX.search(_text(icon.parent))
            downloads = parse_count(match.group(1)) if match else None

        views_match = _VIEWS_REGEX.search(_text(row))
        date = row.select_one(".ipsType_medium time")

        return CatalogRecord(
            id=parse_id_from_url(url),
            url=url,
            title=title,
            description=html_to_markdown(
                row.select_one(".ipsDataItem_main .ipsType_richText")
            ),
            downloads=downloads,
            views=parse_count(views_match.group(1)) if views_match else None,
            author=_text(row.select_one(".ipsDataItem_main p.ipsType_reset a")),
            date=_parse_date(date.get("datetime") if date is not None else None),
        )

    def needs_login(self, doc: Document) -> bool:
        return doc.select_one("#elSignInLink") is not None

    def extract_record_details(self, doc: Document) -> RecordDetails:
        info = []
        for item in doc.select("li.ipsDataItem"):
            value = item.select_one(".cFileInfoData")
            name = item.select_one("strong")
            if value is not None and name is not None:
                info.append(InfoField(name=_text(name), value=_text(value)))

        return RecordDetails(
            description=html_to_markdown(doc.select_one(".ipsPad .ipsType_richText")),
            info=info or None,
        )

    def extract_download_link(self, doc: Document) -> str:
        button = doc.select_one("a.ipsButton.ipsButton_important.ipsButton_large[href]")
        if button is None:
            raise ExtractionError("Could not find download button on file details page.")
        return button["href"]

    def extract_file_listing(self, doc: Document) -> list[FileEntry]:
        entries = []
        for a in doc.select('.ipsDataItem a[data-action="download"][href]'):
            row = a.find_parent(class_="ipsDataItem")
            if row is None:
                continue
            meta = row.select_one(".ipsDataItem_meta")
            entries.append(
                FileEntry(
                    filename=_text(row.select_one(".ipsDataItem_title")),
                    url=a["href"],
                    info=_text(meta) or None,
                )
            )
        return entries
