"""Book CRUD on top of the catalog store: validation and vector staleness."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shelf.core.constants import (
    EMBEDDED_FIELDS,
    MAX_AUTHOR_LENGTH,
    MAX_SUMMARY_LENGTH,
    MAX_TITLE_LENGTH,
    MIN_PAGES,
)
from shelf.core.exceptions import NotFoundError, ValidationError
from shelf.storage.interface import Book, CatalogStore

if TYPE_CHECKING:
    from shelf.core.orchestrator import EmbeddingOrchestrator

logger = logging.getLogger(__name__)


def validate_book(title, author, pages, summary=None) -> None:
    """Validate book fields. Raises ValidationError on bad input."""
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"title exceeds {MAX_TITLE_LENGTH} character limit")
    if not isinstance(author, str) or not author.strip():
        raise ValidationError("author is required")
    if len(author) > MAX_AUTHOR_LENGTH:
        raise ValidationError(f"author exceeds {MAX_AUTHOR_LENGTH} character limit")
    if isinstance(pages, bool) or not isinstance(pages, int) or pages < MIN_PAGES:
        raise ValidationError("pages must be greater than 0")
    if summary is not None and len(summary) > MAX_SUMMARY_LENGTH:
        raise ValidationError(f"summary exceeds {MAX_SUMMARY_LENGTH} character limit")


class BookCatalog:
    """Validated CRUD for books.

    Stored vectors are derived from title/author/pages. When those change the
    vector goes stale; with ``invalidate_on_edit`` it is cleared so the next
    backfill re-embeds the book, otherwise it is kept as is.
    """

    def __init__(
        self,
        store: CatalogStore,
        *,
        orchestrator: EmbeddingOrchestrator | None = None,
        invalidate_on_edit: bool = False,
        embed_on_create: bool = False,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.invalidate_on_edit = invalidate_on_edit
        self.embed_on_create = embed_on_create

    def list(self) -> list[Book]:
        return self.store.list_all()

    def get(self, book_id: int) -> Book:
        book = self.store.get(book_id)
        if book is None:
            raise NotFoundError(book_id)
        return book

    def create(self, title: str, author: str, pages: int, summary: str | None = None) -> Book:
        validate_book(title, author, pages, summary)
        book = self.store.create(title.strip(), author.strip(), pages, summary)
        logger.info("Created book %d: %s", book.id, book.title)

        if self.embed_on_create and self.orchestrator is not None:
            if self.orchestrator.embed_book(book.id):
                book = self.store.get(book.id) or book
        return book

    def update(
        self, book_id: int, title: str, author: str, pages: int, summary: str | None = None,
    ) -> Book:
        validate_book(title, author, pages, summary)
        existing = self.get(book_id)
        title, author = title.strip(), author.strip()

        changed = [
            name for name, new in zip(EMBEDDED_FIELDS, (title, author, pages))
            if getattr(existing, name) != new
        ]
        clear = bool(changed) and existing.has_embedding and self.invalidate_on_edit
        if changed and existing.has_embedding and not clear:
            logger.debug("Book %d changed %s; keeping its stored embedding", book_id, ", ".join(changed))

        book = self.store.update(
            book_id, title=title, author=author, pages=pages, summary=summary, clear_vector=clear,
        )
        if clear:
            logger.info("Cleared stale embedding for book %d (changed: %s)", book_id, ", ".join(changed))
        return book

    def delete(self, book_id: int) -> None:
        self.store.delete(book_id)
        logger.info("Deleted book %d", book_id)
