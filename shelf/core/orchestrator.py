"""Embedding lifecycle and semantic search over the book catalog.

Per-book embedding state only moves forward:

    no vector --(embed + save succeeds)--> vector
    no vector --(anything fails)--------> no vector (logged, retried next backfill)

Nothing partial is ever persisted. Search reads whatever vectors exist at the
time; a concurrent backfill may or may not be visible to it.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, TypeVar, Union

from shelf.config import DEFAULT_TEMPLATE, validate_template
from shelf.core import codec
from shelf.core.constants import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_QUERY
from shelf.core.exceptions import (
    EmbeddingGenerationError,
    InvalidQueryError,
    MalformedVectorError,
    NotFoundError,
)
from shelf.core.similarity import rank
from shelf.embedding.interface import EmbeddingInterface
from shelf.storage.interface import Book, CatalogStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================
# Vector state
# ============================================================

@dataclass(frozen=True)
class Present:
    vector: list[float]


@dataclass(frozen=True)
class Absent:
    pass


@dataclass(frozen=True)
class Corrupt:
    reason: str


VectorState = Union[Present, Absent, Corrupt]


def vector_state(book: Book, dimensions: int | None = None) -> VectorState:
    """Classify a book's stored vector. Only Present vectors are ranked."""
    if book.embedding is None:
        return Absent()
    try:
        return Present(codec.decode(book.embedding, dimensions))
    except MalformedVectorError as e:
        return Corrupt(str(e))


# ============================================================
# Retry policy
# ============================================================

@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an embedding call before giving up.

    ``attempts`` counts total tries (1 = no retry). Waits ``backoff * 2**n``
    seconds between tries. Only EmbeddingGenerationError is retried.
    """

    attempts: int = 1
    backoff: float = 0.0

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.backoff < 0:
            raise ValueError("backoff must be >= 0")

    def run(self, fn: Callable[[], T]) -> T:
        for attempt in range(1, self.attempts + 1):
            try:
                return fn()
            except EmbeddingGenerationError as e:
                if attempt >= self.attempts:
                    raise
                wait = self.backoff * 2 ** (attempt - 1)
                logger.warning(
                    "Embedding attempt %d/%d failed: %s. Retrying in %.1fs...",
                    attempt, self.attempts, e, wait,
                )
                if wait:
                    time.sleep(wait)
        raise AssertionError("unreachable")


NO_RETRY = RetryPolicy()


# ============================================================
# Backfill report
# ============================================================

@dataclass
class BackfillReport:
    """Outcome of one backfill run. A fold over the books it attempted."""

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: dict[int, str] = field(default_factory=dict)

    def record(self, book_id: int, error: str | None) -> None:
        self.attempted += 1
        if error is None:
            self.succeeded += 1
        else:
            self.failed += 1
            self.failures[book_id] = error

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failed_ids": sorted(self.failures),
        }


# ============================================================
# Orchestrator
# ============================================================

class EmbeddingOrchestrator:
    """Drives embedding generation and serves semantic search.

    Depends only on the CatalogStore and EmbeddingInterface contracts.
    """

    def __init__(
        self,
        store: CatalogStore,
        embedding: EmbeddingInterface,
        *,
        dimensions: int | None = None,
        template: str = DEFAULT_TEMPLATE,
        retry: RetryPolicy = NO_RETRY,
        workers: int = 1,
    ):
        self.store = store
        self.embedding = embedding
        self.dimensions = dimensions if dimensions is not None else embedding.dimensions
        self.template = validate_template(template)
        self.retry = retry
        self.workers = max(1, workers)

    def describe(self, book: Book) -> str:
        """Embedding input for a book. Depends only on the book's current fields."""
        return self.template.format(
            id=book.id, title=book.title, author=book.author, pages=book.pages,
        )

    # --- search ---

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[Book]:
        """Books most similar to the query, best first. Scores are not returned."""
        return [book for book, _ in self.search_scored(query, limit)]

    def search_scored(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[tuple[Book, float]]:
        """Rank embedded books against the query.

        Raises InvalidQueryError for blank/oversized queries or a negative limit
        (before any embedding call), and EmbeddingGenerationError if the query
        cannot be embedded. Books with corrupt vectors are skipped with a warning.
        """
        if query is None or not query.strip():
            raise InvalidQueryError("query is required")
        if len(query) > MAX_SEARCH_QUERY:
            raise InvalidQueryError(f"query exceeds {MAX_SEARCH_QUERY} character limit")
        if limit < 0:
            raise InvalidQueryError("limit must be >= 0")

        query_vector = self._embed(query.strip())

        books: dict[int, Book] = {}
        candidates: list[tuple[int, list[float]]] = []
        for book in self.store.list_with_vector():
            state = vector_state(book, self.dimensions)
            if isinstance(state, Present):
                books[book.id] = book
                candidates.append((book.id, state.vector))
            elif isinstance(state, Corrupt):
                logger.warning("Skipping book %d in search: stored embedding is unusable (%s)", book.id, state.reason)

        ranked = rank(query_vector, candidates, limit)
        logger.debug("Search %r ranked %d candidates, returning %d", query, len(candidates), len(ranked))
        return [(books[book_id], score) for book_id, score in ranked]

    # --- generation ---

    def _embed(self, text: str, retry: RetryPolicy = NO_RETRY) -> list[float]:
        """Embed text and require the configured dimensionality."""
        vector = retry.run(lambda: self.embedding.embed(text))
        if len(vector) != self.dimensions:
            raise EmbeddingGenerationError(
                f"Backend returned {len(vector)} dimensions, expected {self.dimensions}"
            )
        return vector

    def _embed_and_save(self, book: Book, retry: RetryPolicy) -> None:
        vector = self._embed(self.describe(book), retry)
        self.store.save_vector(book.id, codec.encode(vector))

    def _backfill_one(self, book: Book, retry: RetryPolicy) -> str | None:
        """Embed and persist one book. Returns None on success, else the error message."""
        try:
            self._embed_and_save(book, retry)
        except NotFoundError as e:
            logger.warning("Book %d (%s) was deleted before its embedding was saved", book.id, book.title)
            return str(e)
        except EmbeddingGenerationError as e:
            logger.error("Failed to generate embedding for book %d (%s): %s", book.id, book.title, e)
            return str(e)
        except Exception as e:
            logger.exception("Failed to generate embedding for book %d (%s)", book.id, book.title)
            return f"{type(e).__name__}: {e}"
        logger.info("Generated embedding for book %d (%s)", book.id, book.title)
        return None

    def backfill(self, retry: RetryPolicy | None = None) -> BackfillReport:
        """Embed every book that has no vector yet.

        Continues past individual failures; each one is logged with the book's
        id and counted in the report. Runs sequentially unless ``workers > 1``.
        """
        policy = retry or self.retry
        books = self.store.list_without_vector()
        report = BackfillReport()
        logger.info("Generating embeddings for %d books (workers=%d)", len(books), self.workers)
        start = time.monotonic()

        if self.workers > 1 and len(books) > 1:
            lock = threading.Lock()

            def _run(book: Book) -> None:
                error = self._backfill_one(book, policy)
                with lock:
                    report.record(book.id, error)

            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [pool.submit(_run, book) for book in books]
                for future in futures:
                    future.result()
        else:
            for book in books:
                report.record(book.id, self._backfill_one(book, policy))

        logger.info(
            "Backfill done in %.1fs: %d attempted, %d succeeded, %d failed",
            time.monotonic() - start, report.attempted, report.succeeded, report.failed,
        )
        return report

    def embed_book(self, book_id: int) -> bool:
        """Embed a single book now. Never raises; False means it stays unembedded."""
        book = self.store.get(book_id)
        if book is None:
            logger.warning("Cannot embed book %d: not found", book_id)
            return False
        return self._backfill_one(book, self.retry) is None
