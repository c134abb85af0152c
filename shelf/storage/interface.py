"""Catalog store ABC. The search core depends only on this contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Book:
    """A catalog record.

    ``embedding`` holds the persisted vector text exactly as stored (None until
    a backfill embeds the book). Decoding is the search layer's job so a
    corrupt value can be told apart from a missing one.
    """

    id: int
    title: str
    author: str
    pages: int
    embedding: str | None = None
    summary: str | None = None

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def to_dict(self) -> dict:
        """Public representation. The raw vector is never exposed."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "pages": self.pages,
            "summary": self.summary,
            "has_embedding": self.has_embedding,
        }


class CatalogStore(ABC):
    """Abstract base for book storage backends.

    Listing methods return books ordered by ascending id. Search relies on that
    order to break score ties deterministically.
    """

    @abstractmethod
    def list_all(self) -> list[Book]:
        """Return every book."""

    @abstractmethod
    def list_without_vector(self) -> list[Book]:
        """Return books with no stored embedding."""

    @abstractmethod
    def list_with_vector(self) -> list[Book]:
        """Return books with a stored embedding (possibly corrupt)."""

    @abstractmethod
    def get(self, book_id: int) -> Book | None:
        """Return one book, or None if it does not exist."""

    @abstractmethod
    def save_vector(self, book_id: int, vector_text: str) -> None:
        """Persist encoded vector text. Raises NotFoundError if the book is gone."""

    @abstractmethod
    def create(self, title: str, author: str, pages: int, summary: str | None = None) -> Book:
        """Insert a book and return it with its assigned id."""

    @abstractmethod
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
        """Replace descriptive fields. Raises NotFoundError.

        ``summary=None`` keeps the stored summary; an empty string clears it.
        """

    @abstractmethod
    def delete(self, book_id: int) -> None:
        """Remove a book. Raises NotFoundError."""

    def count(self) -> int:
        return len(self.list_all())

    def count_with_vector(self) -> int:
        return len(self.list_with_vector())
