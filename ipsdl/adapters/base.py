"""
Contract for version-specific markup adapters.

An adapter turns rendered board pages into catalog models. Adapters are
interchangeable strategies without shared state, so the engine can be
pointed at any supported board version by passing a different adapter.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag
from markdownify import markdownify

from ipsdl.models.catalog import Category, FileEntry, RecordDetails, RecordPage

_TAG_REGEX = re.compile(r"<[^<]+>")

Document = BeautifulSoup


def html_to_markdown(element: Optional[Tag]) -> str:
    """Converts a rich text element into markdown, dropping leftover tags."""
    if element is None:
        return ""
    text = markdownify(element.decode_contents(), heading_style="ATX")
    return _TAG_REGEX.sub("", text).strip()


class MarkupAdapter(ABC):
    """Extracts catalog data from the pages of one board version."""

    #: Board-relative URL of the category overview.
    categories_url: str

    @abstractmethod
    def extract_category_groups(self, doc: Document) -> list[str]:
        """
        Returns the URLs of the top-level category groups, or an empty list
        when the overview already lists the leaf categories.
        """

    @abstractmethod
    def extract_categories(self, doc: Document) -> list[Category]:
        """Returns the leaf categories listed on a page."""

    @abstractmethod
    def listing_params(
        self, page: int, sort_key: str, sort_order: str, per_page: Optional[int]
    ) -> dict[str, Any]:
        """Returns the query parameters selecting one page of a category listing."""

    @abstractmethod
    def extract_page_of_records(self, doc: Document) -> RecordPage:
        """Returns the records of a listing page and the page count it reports."""

    @abstractmethod
    def needs_login(self, doc: Document) -> bool:
        """Tells whether the page offers a sign-in link instead of member content."""

    @abstractmethod
    def extract_record_details(self, doc: Document) -> RecordDetails:
        """Returns description and info box of a record's overview page."""

    @abstractmethod
    def extract_download_link(self, doc: Document) -> str:
        """Returns the URL behind the download button of an overview page."""

    @abstractmethod
    def extract_file_listing(self, doc: Document) -> list[FileEntry]:
        """Returns the files offered on a download confirmation page."""
