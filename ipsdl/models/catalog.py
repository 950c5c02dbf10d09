"""
Pydantic models for the board catalog: categories, records and file listings.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ipsdl.exceptions import InvalidArgumentError
from ipsdl.utils.path import parse_id_from_url


class Category(BaseModel):
    """A download category of the board. Identity is the ID parsed from its URL."""

    model_config = ConfigDict(frozen=True)

    id: int
    label: str
    url: str


class FileEntry(BaseModel):
    """One file offered on the download page of a multi-file record."""

    filename: str
    url: str
    info: Optional[str] = None


class InfoField(BaseModel):
    """A name/value pair from the information box of a record's detail page."""

    name: str
    value: str


class CatalogRecord(BaseModel):
    """
    A downloadable catalog entry.

    `filename` and `listing` are only set after a download resolution pass.
    `category` is attached when reading from the cache and never persisted,
    since the cache is already keyed by category.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: int
    url: str
    title: str
    description: str = ""
    downloads: Optional[int] = None
    views: Optional[int] = None
    author: str = ""
    date: Optional[datetime] = None
    category: Optional[int] = Field(default=None, exclude=True)
    filename: Optional[str] = None
    listing: Optional[list[FileEntry]] = None
    info: Optional[list[InfoField]] = None
    broken: Optional[bool] = None

    def to_cache(self) -> dict[str, Any]:
        """Serializes the record for the file cache."""
        return self.model_dump(mode="json", exclude_none=True)


class RecordPage(BaseModel):
    """The records of one listing page and the total page count it reports."""

    records: list[CatalogRecord] = Field(default_factory=list)
    page_count: int = 1


class RecordDetails(BaseModel):
    """Details scraped from a record's overview page."""

    description: str = ""
    info: Optional[list[InfoField]] = None


class CategoryKey(BaseModel):
    """The canonical `{id, url}` pair a category reference resolves to."""

    model_config = ConfigDict(frozen=True)

    id: int
    url: str
    label: str = ""


CategoryRef = Union[int, Category, Mapping]


def category_key_from_ref(ref: Any) -> Union[int, CategoryKey]:
    """
    Validates a category reference without doing any I/O.

    Returns the bare ID for integer references, which still need a lookup in
    the category index, or a complete `CategoryKey` for object references.

    Raises:
        InvalidArgumentError: If the reference is neither an integer nor an
        object carrying a `url`, or if an object without an `id` has a URL
        no ID can be parsed from.
    """
    if isinstance(ref, bool):
        raise InvalidArgumentError("Category must be a number when not providing an object.")
    if isinstance(ref, int):
        return ref
    if isinstance(ref, Category):
        return CategoryKey(id=ref.id, url=ref.url, label=ref.label)
    if isinstance(ref, Mapping):
        if not ref.get("url"):
            raise InvalidArgumentError("Category must contain an `url` property.")
        if ref.get("id") is None:
            category_id = parse_id_from_url(ref["url"], "showcat")
        else:
            category_id = ref["id"]
        try:
            return CategoryKey(
                id=int(category_id), url=ref["url"], label=str(ref.get("label", ""))
            )
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(
                f"Category object has no usable `id`: {ref!r}"
            ) from e
    raise InvalidArgumentError("Category must be a number when not providing an object.")
