"""
File-based JSON caches for a board's categories and catalog records.

Both caches are rewritten wholesale on every save. Writes go to a temporary
file in the same directory which then replaces the cache, so an interrupted
save never leaves a truncated file behind.
"""

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ipsdl.models.catalog import CatalogRecord, Category

log = logging.getLogger(__name__)

# Fields only filled in by visiting a record's pages, which a fresh listing
# row does not carry.
ENRICHED_FIELDS = ("description", "info", "listing", "filename")


def write_json_atomic(path: Path, data: Any) -> None:
    """Serializes `data` to `path` via write-then-rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent="\t", ensure_ascii=False)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def _read_json(path: Path) -> Optional[Any]:
    if not path.is_file():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        log.warning(f"[yellow]Ignoring unreadable cache file {path}:[/] {e}")
        return None


class CategoryCache:
    """The category tree of a board, stored as a flat list."""

    def __init__(self, cache_path: Path):
        self.cache_path = cache_path

    def exists(self) -> bool:
        return self.cache_path.is_file()

    def load(self) -> list[Category]:
        """Returns all cached categories or an empty list if nothing cached."""
        data = _read_json(self.cache_path) or []
        try:
            return [Category.model_validate(c) for c in data]
        except ValidationError as e:
            log.warning(f"[yellow]Ignoring invalid category cache:[/] {e}")
            return []

    def save(self, categories: Iterable[Category]) -> None:
        write_json_atomic(
            self.cache_path, [c.model_dump(mode="json") for c in categories]
        )


class RecordCache:
    """
    Catalog records of a board, keyed by category ID.

    The whole file is read on first use and every save writes all categories
    back, so saving after touching a single category never drops its
    siblings. Records are handed out by reference: enriching a loaded record
    and calling `save()` persists the change.
    """

    def __init__(self, cache_path: Path):
        self.cache_path = cache_path
        self._records: Optional[dict[int, list[CatalogRecord]]] = None

    def _ensure_loaded(self) -> dict[int, list[CatalogRecord]]:
        if self._records is None:
            self._records = self._read()
        return self._records

    def _read(self) -> dict[int, list[CatalogRecord]]:
        data = _read_json(self.cache_path)
        if not isinstance(data, dict):
            return {}

        records: dict[int, list[CatalogRecord]] = {}
        for key, items in data.items():
            try:
                category_id = int(key)
            except ValueError:
                log.warning(f"[yellow]Skipping cache entry with invalid category '{key}'.[/]")
                continue
            parsed = []
            for item in items or []:
                try:
                    parsed.append(CatalogRecord.model_validate(item))
                except ValidationError as e:
                    log.debug(f"Skipping invalid cached record in category {key}: {e}")
            records[category_id] = parsed
        log.debug(f"Loaded {sum(map(len, records.values()))} cached records.")
        return records

    def load(self, category_id: int) -> list[CatalogRecord]:
        """Returns the records of a category in stored order, or an empty list."""
        records = self._ensure_loaded().get(category_id, [])
        for record in records:
            record.category = category_id
        return list(records)

    def find(self, category_id: Optional[int], record_id: int) -> Optional[CatalogRecord]:
        if category_id is None:
            return None
        return next((r for r in self.load(category_id) if r.id == record_id), None)

    def merge(self, category_id: int, fresh: Iterable[CatalogRecord]) -> list[CatalogRecord]:
        """
        Merges freshly fetched records into a category, without saving.

        Each fresh record replaces any stored record with the same ID and is
        appended at the end. Enriched fields the fresh record lacks are
        carried over from the replaced one.

        Returns:
            The category's records after the merge.
        """
        merged = self.load(category_id)
        for record in fresh:
            record.category = category_id
            previous = next((r for r in merged if r.id == record.id), None)
            if previous is not None:
                for name in ENRICHED_FIELDS:
                    if not getattr(record, name) and getattr(previous, name):
                        setattr(record, name, getattr(previous, name))
                merged = [r for r in merged if r.id != record.id]
            merged.append(record)

        self._ensure_loaded()[category_id] = merged
        return list(merged)

    def save(self) -> None:
        """Persists every category to disk."""
        records = self._ensure_loaded()
        write_json_atomic(
            self.cache_path,
            {
                str(category_id): [r.to_cache() for r in items]
                for category_id, items in records.items()
            },
        )
        log.debug(f"Saved record cache to {self.cache_path}.")
