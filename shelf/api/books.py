"""Book CRUD, semantic search, and embedding backfill endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, HTTPException, Path, Query, Response
from pydantic import BaseModel

from shelf.core.constants import MAX_LIMIT
from shelf.core.exceptions import (
    EmbeddingGenerationError,
    InvalidQueryError,
    NotFoundError,
    ValidationError,
)
from shelf.core.services import Services

logger = logging.getLogger(__name__)


class BookBody(BaseModel):
    title: str
    author: str
    pages: int
    summary: str | None = None


def register_routes(router: APIRouter, svc: Services, **kw):
    catalog = svc.catalog
    orchestrator = svc.orchestrator
    default_limit = svc.config.search.default_limit

    @router.get("/books")
    def api_list_books():
        return [b.to_dict() for b in catalog.list()]

    # Registered before /books/{book_id} so "search" is not parsed as an id
    @router.get("/books/search")
    def api_search_books(
        q: str | None = Query(None, description="Search query"),
        limit: int = Query(default_limit, ge=0, le=MAX_LIMIT),
    ):
        try:
            books = orchestrator.search(q or "", limit)
        except InvalidQueryError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except EmbeddingGenerationError as e:
            logger.exception("Search failed for query: %r", q)
            raise HTTPException(status_code=500, detail="Failed to search books") from e
        return [b.to_dict() for b in books]

    @router.post("/books/generate-embeddings")
    def api_generate_embeddings():
        try:
            report = orchestrator.backfill()
        except Exception as e:
            logger.exception("Embedding backfill could not run")
            raise HTTPException(status_code=500, detail="Failed to generate embeddings") from e
        return report.to_dict()

    @router.get("/books/{book_id}")
    def api_get_book(book_id: int = Path(...)):
        try:
            return catalog.get(book_id).to_dict()
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

    @router.post("/books", status_code=201)
    def api_create_book(body: BookBody):
        try:
            book = catalog.create(body.title, body.author, body.pages, body.summary)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return book.to_dict()

    @router.put("/books/{book_id}", status_code=204)
    def api_update_book(book_id: int = Path(...), body: BookBody = Body(...)):
        try:
            catalog.update(book_id, body.title, body.author, body.pages, body.summary)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return Response(status_code=204)

    @router.delete("/books/{book_id}", status_code=204)
    def api_delete_book(book_id: int = Path(...)):
        try:
            catalog.delete(book_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return Response(status_code=204)
