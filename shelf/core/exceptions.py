"""Exception hierarchy for the catalog and semantic search."""

from __future__ import annotations


class ShelfError(Exception):
    """Base class for all Shelf errors."""


class ValidationError(ShelfError):
    """Raised when catalog or search input fails validation."""


class InvalidQueryError(ValidationError):
    """Search query is missing, blank, or out of bounds. A client error."""


class EmbeddingGenerationError(ShelfError):
    """The embedding backend failed, timed out, or returned an unusable vector.

    The underlying exception (if any) is kept on ``cause`` and chained as
    ``__cause__`` by the raising provider.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class MalformedVectorError(ShelfError):
    """A persisted vector could not be decoded or has the wrong dimensionality."""


class NotFoundError(ShelfError):
    """The requested book does not exist (or vanished between list and save)."""

    def __init__(self, book_id: int):
        super().__init__(f"Book {book_id} not found")
        self.book_id = book_id
