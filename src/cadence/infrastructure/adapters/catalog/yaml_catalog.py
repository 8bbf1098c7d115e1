"""
YAML-backed item catalog.

Expected document layout:

    items:
      - id: card-1
        front_language: es
        back_language: en
        difficulty: 2
        decks: [spanish-basics]
        archived: false
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from cadence.domain.errors import ValidationError
from cadence.domain.review.models import CatalogItem

from .memory import InMemoryItemCatalog

logger = logging.getLogger(__name__)


def _parse_item(raw: Any, index: int) -> CatalogItem:
    if not isinstance(raw, dict):
        raise ValidationError(f"Catalog entry #{index} must be a mapping, got {type(raw).__name__}")

    item_id = raw.get("id")
    if item_id is None or not str(item_id).strip():
        raise ValidationError(f"Catalog entry #{index} is missing an 'id'")

    difficulty = raw.get("difficulty")
    if difficulty is not None and (isinstance(difficulty, bool) or not isinstance(difficulty, int)):
        raise ValidationError(f"Catalog entry {item_id!r}: difficulty must be an integer")

    decks = raw.get("decks") or []
    if not isinstance(decks, list):
        raise ValidationError(f"Catalog entry {item_id!r}: decks must be a list")

    return CatalogItem(
        item_id=str(item_id),
        front_language_id=raw.get("front_language"),
        back_language_id=raw.get("back_language"),
        difficulty=difficulty,
        deck_ids=frozenset(str(d) for d in decks),
        is_archived=bool(raw.get("archived", False)),
    )


def parse_catalog(text: str) -> list[CatalogItem]:
    """
    Parse catalog items from YAML text.

    Raises:
        ValidationError: The text is not valid YAML or not a catalog document.
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValidationError(f"Catalog is not valid YAML: {e}") from e

    if document is None:
        return []
    entries = document.get("items") if isinstance(document, dict) else None
    if not isinstance(document, dict) or not isinstance(entries or [], list):
        raise ValidationError("Catalog document must be a mapping with an 'items' list")

    items = [_parse_item(raw, i) for i, raw in enumerate(entries or [])]
    seen: set[str] = set()
    for item in items:
        if item.item_id in seen:
            raise ValidationError(f"Duplicate catalog id: {item.item_id}")
        seen.add(item.item_id)
    return items


def load_yaml_catalog(path: Path) -> InMemoryItemCatalog:
    """Read a catalog file into an InMemoryItemCatalog."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Could not read catalog {path}: {e}") from e

    items = parse_catalog(text)
    logger.info(f"Loaded {len(items)} catalog items from {path}")
    return InMemoryItemCatalog(items)
