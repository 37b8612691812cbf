"""Loads the group catalog from a JSON file."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

from domain.entities import GroupCatalogEntry
from domain.errors import CatalogError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).with_name("groups.json")


def load_catalog(path: str | Path | None = None) -> list[GroupCatalogEntry]:
    """Read a JSON array of groups, keeping file order as catalog order."""
    catalog_path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    try:
        raw = json.loads(catalog_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CatalogError(f"Cannot read catalog {catalog_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Catalog {catalog_path} is not valid JSON: {exc}") from exc
    if not isinstance(raw, list):
        raise CatalogError(f"Catalog {catalog_path} must contain a JSON array")

    entries: list[GroupCatalogEntry] = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, dict):
            raise CatalogError(f"Catalog item must be an object, got {type(item).__name__}")
        entry = GroupCatalogEntry.from_payload(item)
        if entry.id in seen:
            raise CatalogError(f"Duplicate group id {entry.id!r} in {catalog_path}")
        seen.add(entry.id)
        entries.append(entry)
    logger.info("Loaded %d groups from %s", len(entries), catalog_path)
    return entries


def unique_tags(entries: Iterable[GroupCatalogEntry]) -> tuple[str, ...]:
    """All distinct tags of the catalog in first-seen order."""
    tags: dict[str, None] = {}
    for entry in entries:
        for tag in entry.tags:
            tags.setdefault(tag, None)
    return tuple(tags)


__all__ = ["DEFAULT_CATALOG_PATH", "load_catalog", "unique_tags"]
