"""System health and statistics."""

from __future__ import annotations

from shelf import __version__
from shelf.core import stats
from shelf.core.services import Services


def get_status(svc: Services) -> dict:
    """Aggregate catalog counts and embedding backend health."""
    total = svc.store.count()
    embedded = svc.store.count_with_vector()

    models = {}
    if stats.embedding_stats:
        models["embedding"] = stats.embedding_stats.to_dict()

    return {
        "status": "ok",
        "version": __version__,
        "store": svc.config.store,
        "books": {
            "total": total,
            "embedded": embedded,
            "pending": total - embedded,
        },
        "embedding": {
            "backend": svc.config.embedding.backend,
            "model": svc.config.embedding.model_name,
            "dimensions": svc.config.embedding.dimensions,
        },
        "models": models,
    }
