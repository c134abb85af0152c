"""Catalog store factory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shelf.storage.interface import Book, CatalogStore

if TYPE_CHECKING:
    from shelf.storage.database import Database

logger = logging.getLogger(__name__)

__all__ = ["Book", "CatalogStore", "get_catalog_store"]


def get_catalog_store(kind: str, db: Database | None = None) -> CatalogStore:
    """Return the configured catalog store ("memory" or "postgres")."""
    if kind == "memory":
        from shelf.storage.memory import InMemoryCatalogStore
        logger.info("Using in-memory catalog store (data is lost on restart)")
        return InMemoryCatalogStore()
    if kind == "postgres":
        if db is None:
            raise ValueError("postgres catalog store requires a Database")
        from shelf.storage.postgres import PostgresCatalogStore
        return PostgresCatalogStore(db)
    raise ValueError(f"Unknown catalog store: {kind!r}. Available: memory, postgres")
