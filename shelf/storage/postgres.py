"""PostgreSQL-backed catalog store (the ``books`` table)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shelf.core.exceptions import NotFoundError
from shelf.storage.interface import Book, CatalogStore

if TYPE_CHECKING:
    from shelf.storage.database import Database

logger = logging.getLogger(__name__)

_COLUMNS = "id, title, author, pages, embedding_json, summary"


def _row_to_book(row: dict) -> Book:
    return Book(
        id=row["id"],
        title=row["title"],
        author=row["author"],
        pages=row["pages"],
        embedding=row["embedding_json"],
        summary=row["summary"],
    )


class PostgresCatalogStore(CatalogStore):
    """Catalog persistence via the pooled Database. Every write commits."""

    def __init__(self, db: Database):
        self.db = db

    def _list(self, where: str = "") -> list[Book]:
        rows = self.db.execute(f"SELECT {_COLUMNS} FROM books {where} ORDER BY id")
        return [_row_to_book(r) for r in rows]

    def list_all(self) -> list[Book]:
        return self._list()

    def list_without_vector(self) -> list[Book]:
        return self._list("WHERE embedding_json IS NULL")

    def list_with_vector(self) -> list[Book]:
        return self._list("WHERE embedding_json IS NOT NULL")

    def get(self, book_id: int) -> Book | None:
        row = self.db.execute_one(f"SELECT {_COLUMNS} FROM books WHERE id = %s", (book_id,))
        return _row_to_book(row) if row else None

    def save_vector(self, book_id: int, vector_text: str) -> None:
        row = self.db.execute_one(
            "UPDATE books SET embedding_json = %s, updated_at = NOW() WHERE id = %s RETURNING id",
            (vector_text, book_id),
        )
        self.db.commit()
        if row is None:
            raise NotFoundError(book_id)

    def create(self, title: str, author: str, pages: int, summary: str | None = None) -> Book:
        row = self.db.execute_one(
            f"""
            INSERT INTO books (title, author, pages, summary)
            VALUES (%s, %s, %s, %s)
            RETURNING {_COLUMNS}
            """,
            (title, author, pages, summary or None),
        )
        self.db.commit()
        logger.debug("Created book %d", row["id"])
        return _row_to_book(row)

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
        row = self.db.execute_one(
            f"""
            UPDATE books SET
                title = %s,
                author = %s,
                pages = %s,
                summary = CASE WHEN %s THEN summary ELSE %s END,
                embedding_json = CASE WHEN %s THEN NULL ELSE embedding_json END,
                updated_at = NOW()
            WHERE id = %s
            RETURNING {_COLUMNS}
            """,
            (title, author, pages, summary is None, summary or None, clear_vector, book_id),
        )
        self.db.commit()
        if row is None:
            raise NotFoundError(book_id)
        return _row_to_book(row)

    def delete(self, book_id: int) -> None:
        row = self.db.execute_one("DELETE FROM books WHERE id = %s RETURNING id", (book_id,))
        self.db.commit()
        if row is None:
            raise NotFoundError(book_id)

    def count(self) -> int:
        row = self.db.execute_one("SELECT COUNT(*) AS count FROM books")
        return row["count"] if row else 0

    def count_with_vector(self) -> int:
        row = self.db.execute_one(
            "SELECT COUNT(*) AS count FROM books WHERE embedding_json IS NOT NULL"
        )
        return row["count"] if row else 0
