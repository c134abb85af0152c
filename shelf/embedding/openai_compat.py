"""OpenAI-compatible embedding implementation.

Works with any API that speaks the /v1/embeddings format:
  - OpenAI (api.openai.com)
  - Ollama (localhost:11434)
  - vLLM, LM Studio, Together AI

No SDK dependency, uses urllib. Single attempt per call.
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
from typing import NoReturn

from shelf.config import EmbeddingConfig
from shelf.core import stats
from shelf.core.exceptions import EmbeddingGenerationError
from shelf.embedding.interface import EmbeddingInterface, check_vector, require_text

logger = logging.getLogger(__name__)


class OpenAICompatibleEmbedding(EmbeddingInterface):
    """Embedding via any OpenAI-compatible /v1/embeddings endpoint.

    Empty API key = no Authorization header (for local endpoints like Ollama).
    """

    def __init__(self, config: EmbeddingConfig):
        self._dimensions = config.dimensions
        self._model = config.openai_model
        self._api_key = config.openai_api_key
        self._timeout = config.timeout
        self._base_url = config.openai_base_url.rstrip("/")
        logger.info(
            "OpenAI-compatible embedding ready: %s at %s (dimensions=%d, auth=%s)",
            self._model,
            self._base_url,
            self._dimensions,
            "yes" if self._api_key else "no",
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _build_request(self, payload: bytes) -> urllib.request.Request:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return urllib.request.Request(
            f"{self._base_url}/v1/embeddings",
            data=payload,
            headers=headers,
        )

    def _fail(self, message: str, cause: BaseException | None = None) -> NoReturn:
        stats.record_failure(message)
        logger.error("Embedding API failed: %s", message)
        raise EmbeddingGenerationError(message, cause=cause) from cause

    def _request(self, text: str) -> list[dict]:
        """POST one request and return the ``data`` array."""
        payload = json.dumps({"model": self._model, "input": text}).encode()
        req = self._build_request(payload)
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            self._fail(f"Embedding API returned HTTP {e.code}", e)
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError, ConnectionError, OSError) as e:
            self._fail(f"Embedding API unreachable: {e}", e)

        try:
            result = json.loads(raw)
        except ValueError as e:
            self._fail(f"API returned invalid JSON: {raw[:200]!r}", e)

        data = result.get("data") if isinstance(result, dict) else None
        if not data:
            keys = list(result.keys()) if isinstance(result, dict) else type(result).__name__
            self._fail(f"API returned no data: {keys}")
        return data

    def _vector(self, item: dict) -> list[float]:
        try:
            return check_vector(item.get("embedding"), self._dimensions)
        except EmbeddingGenerationError as e:
            self._fail(str(e), e.cause)

    def embed(self, text: str) -> list[float]:
        require_text(text)
        data = self._request(text)
        vector = self._vector(data[0])
        stats.record_success(text)
        return vector
