"""In-memory catalog store. Used by tests and SHELF_STORE=memory."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace

from shelf.core.exceptions import NotFoundError
from shelf.storage.interface import Book, CatalogStore

logger = logging.getLogger(__name__)


class InMemoryCatalogStore(CatalogStore):
    """Dict arena keyed by id plus a next-id counter.

    New ids are max(existing) + 1, so an id freed by deleting the newest book
    is handed out again. Books are immutable; writes swap in a new instance.
    """

    def __init__(self, books: list[Book] | None = None):
        self._lock = threading.Lock()
        self._books: dict[int, Book] = {}
        for book in books or []:
            self._books[book.id] = book

    def _sorted(self) -> list[Book]:
        return [self._books[k] for k in sorted(self._books)]

    def list_all(self) -> list[Book]:
        with self._lock:
            return self._sorted()

    def list_without_vector(self) -> list[Book]:
        with self._lock:
            return [b for b in self._sorted() if b.embedding is None]

    def list_with_vector(self) -> list[Book]:
        with self._lock:
            return [b for b in self._sorted() if b.embedding is not None]

    def get(self, book_id: int) -> Book | None:
        with self._lock:
            return self._books.get(book_id)

    def save_vector(self, book_id: int, vector_text: str) -> None:
        with self._lock:
            book = self._books.get(book_id)
            if book is None:
                raise NotFoundError(book_id)
            self._books[book_id] = replace(book, embedding=vector_text)

    def create(self, title: str, author: str, pages: int, summary: str | None = None) -> Book:
        with self._lock:
            next_id = max(self._books, default=0) + 1
            book = Book(id=next_id, title=title, author=author, pages=pages, summary=summary or None)
            self._books[next_id] = book
        logger.debug("Created book %d", next_id)
        return book

    def update(
        self,
        book_id: int,
        *,
        title: str,
        author: str,
        pages: int,
        summary: str | None = None,
        clear_vector: bool = False,
    ) -> Book:
        with self._lock:
            book = self._books.get(book_id)
            if book is None:
                raise NotFoundError(book_id)
            updated = replace(
                book,
                title=title,
                author=author,
                pages=pages,
                summary=book.summary if summary is None else (summary or None),
                embedding=None if clear_vector else book.embedding,
            )
            self._books[book_id] = updated
        return updated

    def delete(self, book_id: int) -> None:
        with self._lock:
            if self._books.pop(book_id, None) is None:
                raise NotFoundError(book_id)

    def count(self) -> int:
        with self._lock:
            return len(self._books)
