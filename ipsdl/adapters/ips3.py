"""
Markup adapter for IPS 3 boards (the `idm` downloads application).

Only the category list is supported for this version.
"""

from typing import Any, Optional

from ipsdl.exceptions import ExtractionError
from ipsdl.models.catalog import Category, FileEntry, RecordDetails, RecordPage
from ipsdl.utils.path import parse_id_from_url, strip_session_param

from .base import Document, MarkupAdapter

_UNSUPPORTED = "IPS 3 boards only support listing categories."


class IPS3Adapter(MarkupAdapter):
    """Selectors for the IPS 3 downloads application."""

    categories_url = "/index.php?app=downloads"

    def extract_category_groups(self, doc: Document) -> list[str]:
        # The overview lists every category in a single tree.
        return []

    def extract_categories(self, doc: Document) -> list[Category]:
        categories = []
        for a in doc.select("#idm_categories li > a[href]"):
            if not a.get("title") or "cat_toggle" in (a.get("class") or []):
                continue
            url = strip_session_param(a["href"])
            categories.append(
                Category(
                    id=parse_id_from_url(url, "showcat"),
                    label=a.get_text(strip=True),
                    url=url,
                )
            )
        if not categories:
            raise ExtractionError("Could not find categories in #idm_categories.")
        return categories

    def listing_params(
        self, page: int, sort_key: str, sort_order: str, per_page: Optional[int]
    ) -> dict[str, Any]:
        raise NotImplementedError(_UNSUPPORTED)

    def extract_page_of_records(self, doc: Document) -> RecordPage:
        raise NotImplementedError(_UNSUPPORTED)

    def needs_login(self, doc: Document) -> bool:
        raise NotImplementedError(_UNSUPPORTED)

    def extract_record_details(self, doc: Document) -> RecordDetails:
        raise NotImplementedError(_UNSUPPORTED)

    def extract_download_link(self, doc: Document) -> str:
        raise NotImplementedError(_UNSUPPORTED)

    def extract_file_listing(self, doc: Document) -> list[FileEntry]:
        raise NotImplementedError(_UNSUPPORTED)
