"""Card catalog seeding from a YAML file."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog
import yaml
from pydantic import ValidationError

from shared.dal.errors import CorruptRecordError
from shared.dal.models import Card

if TYPE_CHECKING:
    from shared.dal.store import DataStore

logger = structlog.get_logger()


def default_catalog_path() -> Path:
    """Return the file-relative default path to cards.yaml."""
    backend_root = Path(__file__).parent.parent.parent
    return backend_root / "config" / "cards.yaml"


def load_card_catalog(path: Path) -> list[Card]:
    """Parse a catalog file. A missing file yields an empty catalog."""
    if not path.exists():
        logger.warning("card catalog file not found", path=str(path))
        return []

    with path.open(encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    try:
        return [Card.model_validate(entry) for entry in config.get("cards", [])]
    except ValidationError as exc:
        raise CorruptRecordError(f"Invalid card entry in {path}") from exc


async def seed_card_catalog(store: DataStore, path: Path | None = None) -> int:
    """Insert the catalog file into an empty card table. Returns the number of cards written."""
    if await store.cards.count() > 0:
        logger.info("card catalog already seeded, skipping")
        return 0
    cards = load_card_catalog(path or default_catalog_path())
    written = await store.cards.add_many(cards)
    logger.info("seeded card catalog", count=written)
    return written
