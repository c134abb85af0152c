"""Service container and factory. Centralizes component initialization."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from shelf.config import Config, load_config
from shelf.core.catalog import BookCatalog
from shelf.core.orchestrator import EmbeddingOrchestrator, RetryPolicy
from shelf.core.stats import init_embedding_stats
from shelf.embedding import get_embedding_engine
from shelf.embedding.interface import EmbeddingInterface
from shelf.storage import get_catalog_store
from shelf.storage.database import Database
from shelf.storage.interface import CatalogStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Holds all initialized Shelf components."""

    config: Config
    db: Database | None  # None for the in-memory store
    store: CatalogStore
    embedding: EmbeddingInterface
    orchestrator: EmbeddingOrchestrator
    catalog: BookCatalog


def create_services(
    config: Config | None = None,
    db: Database | None = None,
    *,
    store: CatalogStore | None = None,
    embedding: EmbeddingInterface | None = None,
) -> Services:
    """Build all Shelf services from config.

    Args:
        config: Configuration to use. Loads from env if None.
        db: Pre-connected database (postgres store only). Created if None.
        store: Pre-built catalog store, bypassing config.store.
        embedding: Pre-built embedding backend, bypassing config.embedding.
    """
    if config is None:
        config = load_config()

    if store is None:
        if config.store == "postgres" and db is None:
            db = Database(config.db)
        store = get_catalog_store(config.store, db)

    if embedding is None:
        embedding = get_embedding_engine(config.embedding)
    init_embedding_stats(config.embedding.backend, config.embedding.model_name)

    search = config.search
    orchestrator = EmbeddingOrchestrator(
        store,
        embedding,
        dimensions=config.embedding.dimensions,
        template=search.backfill_template,
        retry=RetryPolicy(attempts=search.retry_attempts, backoff=search.retry_backoff),
        workers=search.backfill_workers,
    )
    catalog = BookCatalog(
        store,
        orchestrator=orchestrator,
        invalidate_on_edit=search.invalidate_on_edit,
        embed_on_create=search.embed_on_create,
    )
    logger.info(
        "Services ready: store=%s, embedding=%s (%s, %d-dim)",
        config.store, config.embedding.backend, config.embedding.model_name, config.embedding.dimensions,
    )

    return Services(
        config=config,
        db=db,
        store=store,
        embedding=embedding,
        orchestrator=orchestrator,
        catalog=catalog,
    )
