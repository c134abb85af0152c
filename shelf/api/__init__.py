"""Shelf REST API: book CRUD, semantic search, and embedding backfill.

Split into route modules under shelf/api/. Each module exports a
register_routes(router, svc) function that adds its endpoints.
"""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware

from shelf import __version__
from shelf.core.services import Services

logger = logging.getLogger(__name__)


def create_api(svc: Services) -> FastAPI:
    """Build the REST API as a FastAPI app. The caller owns the DB lifecycle."""
    db = svc.db
    config = svc.config

    def _release_db_conn():
        """Release any DB connection a request left checked out."""
        yield
        if db is not None:
            db.release_if_held()

    app = FastAPI(
        title="Shelf API",
        version=__version__,
        description="Book catalog with semantic search.",
        docs_url="/swagger",
        redoc_url=None,
        dependencies=[Depends(_release_db_conn)],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    router = APIRouter()

    from shelf.api.core import register_routes as reg_core
    from shelf.api.books import register_routes as reg_books

    reg_core(router, svc)
    reg_books(router, svc)

    app.include_router(router)
    return app
