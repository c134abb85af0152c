"""Shared test helpers for Shelf tests."""

from shelf.core.exceptions import EmbeddingGenerationError
from shelf.embedding.interface import EmbeddingInterface
from shelf.storage.interface import Book


class KeywordEmbedding(EmbeddingInterface):
    """One-hot-per-keyword embeddings.

    Each vocabulary word owns one dimension; a text's vector has 1.0 in the
    dimension of every vocabulary word it contains (case-insensitive).
    """

    def __init__(self, vocabulary: list[str]):
        self.vocabulary = [w.lower() for w in vocabulary]
        self.calls: list[str] = []

    @property
    def dimensions(self) -> int:
        return len(self.vocabulary)

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        lowered = text.lower()
        return [1.0 if word in lowered else 0.0 for word in self.vocabulary]


class FlakyEmbedding(KeywordEmbedding):
    """KeywordEmbedding that fails for texts containing any of ``fail_on``."""

    def __init__(self, vocabulary: list[str], fail_on: list[str]):
        super().__init__(vocabulary)
        self.fail_on = fail_on

    def embed(self, text: str) -> list[float]:
        if any(marker in text for marker in self.fail_on):
            self.calls.append(text)
            raise EmbeddingGenerationError(f"backend down for {text!r}", cause=ConnectionError("refused"))
        return super().embed(text)


class ExplodingEmbedding(EmbeddingInterface):
    """Always fails."""

    def __init__(self, dims: int = 3):
        self._dims = dims
        self.calls = 0

    @property
    def dimensions(self) -> int:
        return self._dims

    def embed(self, text: str) -> list[float]:
        self.calls += 1
        raise EmbeddingGenerationError("embedding service is down", cause=TimeoutError("timed out"))


def make_book(book_id: int, title: str, author: str = "Anon", pages: int = 100, embedding: str | None = None) -> Book:
    return Book(id=book_id, title=title, author=author, pages=pages, embedding=embedding)
