"""Embedding backend factory with pluggable provider registry.

Built-in providers: huggingface (Inference API, the default), openai (any
/v1/embeddings API), bedrock (Titan Text Embeddings V2), local
(SentenceTransformer).
Register custom providers via ``register_embedding_provider(name, factory_fn)``.
"""

from __future__ import annotations

import logging
from typing import Callable

from shelf.config import EmbeddingConfig
from shelf.embedding.interface import EmbeddingInterface

logger = logging.getLogger(__name__)

BUILTIN_BACKENDS = ("huggingface", "openai", "bedrock", "local")

# Provider registry: name -> factory function(config) -> EmbeddingInterface
_providers: dict[str, Callable[[EmbeddingConfig], EmbeddingInterface]] = {}


def register_embedding_provider(
    name: str,
    factory: Callable[[EmbeddingConfig], EmbeddingInterface],
) -> None:
    """Register a custom embedding provider.

    Args:
        name: Backend name (matches SHELF_EMBEDDING_BACKEND env var).
        factory: Callable that takes EmbeddingConfig and returns an EmbeddingInterface.
    """
    _providers[name] = factory
    logger.info("Registered embedding provider: %s", name)


def get_embedding_engine(config: EmbeddingConfig) -> EmbeddingInterface:
    """Return the configured embedding backend.

    Checks the plugin registry first, then the built-in backends.
    """
    backend = config.backend

    if backend in _providers:
        return _providers[backend](config)

    if backend == "huggingface":
        from shelf.embedding.huggingface import HuggingFaceEmbedding
        return HuggingFaceEmbedding(config)
    elif backend == "openai":
        from shelf.embedding.openai_compat import OpenAICompatibleEmbedding
        return OpenAICompatibleEmbedding(config)
    elif backend == "bedrock":
        from shelf.embedding.bedrock import BedrockEmbedding
        return BedrockEmbedding(config)
    elif backend == "local":
        from shelf.embedding.engine import EmbeddingEngine
        return EmbeddingEngine(config)
    else:
        available = sorted(set(BUILTIN_BACKENDS) | set(_providers))
        raise ValueError(
            f"Unknown embedding backend: {backend!r}. "
            f"Available: {', '.join(available)}"
        )
