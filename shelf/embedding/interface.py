"""Embedding engine ABC and the response checks every backend shares."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any

from shelf.core.exceptions import EmbeddingGenerationError


class EmbeddingInterface(ABC):
    """Abstract base for embedding backends.

    Contract for every implementation:
      - a failure of any kind raises EmbeddingGenerationError with the cause attached
      - returned vectors have exactly ``dimensions`` finite floats
      - no retries; retry policy belongs to the caller
    """

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Return the embedding vector dimensionality."""

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single text string."""


def require_text(text: str) -> str:
    """Reject blank input before any request is made."""
    if not isinstance(text, str) or not text.strip():
        raise EmbeddingGenerationError("Cannot embed empty text")
    return text


def check_vector(raw: Any, dimensions: int) -> list[float]:
    """Validate a backend response vector. Raises EmbeddingGenerationError."""
    if not isinstance(raw, (list, tuple)) or not raw:
        raise EmbeddingGenerationError(f"Backend returned no vector (got {type(raw).__name__})")
    try:
        vector = [float(x) for x in raw]
    except (TypeError, ValueError) as e:
        raise EmbeddingGenerationError("Backend returned a non-numeric vector", cause=e) from e
    if not all(math.isfinite(x) for x in vector):
        raise EmbeddingGenerationError("Backend returned a vector with NaN/inf values")
    if len(vector) != dimensions:
        raise EmbeddingGenerationError(
            f"Backend returned {len(vector)} dimensions, expected {dimensions}"
        )
    return vector
