"""Local SentenceTransformer embedding engine. Runs the model in-process."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shelf.config import EmbeddingConfig
from shelf.core import stats
from shelf.core.exceptions import EmbeddingGenerationError
from shelf.embedding.interface import EmbeddingInterface, check_vector, require_text

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)


class EmbeddingEngine(EmbeddingInterface):
    """Wraps SentenceTransformer for text -> vector conversion.

    Runs on CPU, loads lazily on first embed call. A model that fails to load
    is reported as an EmbeddingGenerationError like any remote failure.
    """

    def __init__(self, config: EmbeddingConfig):
        self.config = config
        self._model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the model on first use."""
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model: %s", self.config.model)
            self._model = SentenceTransformer(self.config.model)
            logger.info(
                "Embedding model loaded. Dimensions: %d",
                self._model.get_sentence_embedding_dimension(),
            )
        return self._model

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    def embed(self, text: str) -> list[float]:
        """Embed a single text string. Returns a normalized float vector."""
        require_text(text)
        try:
            vector = self.model.encode(text, normalize_embeddings=True)
            result = check_vector(vector.tolist(), self.dimensions)
        except EmbeddingGenerationError as e:
            stats.record_failure(str(e))
            raise
        except Exception as e:
            stats.record_failure(str(e))
            raise EmbeddingGenerationError(f"Local embedding failed: {e}", cause=e) from e
        stats.record_success(text)
        return result
