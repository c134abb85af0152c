"""HuggingFace Inference API embedding provider.

POSTs ``{"inputs": text, "options": {"wait_for_model": true}}`` to
``<base_url>/models/<model>``. The default model is
sentence-transformers/all-MiniLM-L6-v2 (384 dimensions).

Cold starts: ``wait_for_model`` asks the service to hold the request while the
model loads. If it answers 503 with an ``estimated_time`` instead, we sleep
that long (capped) and ask once more. Anything else is a failure; there are
no retries here.

No SDK dependency, uses urllib like the OpenAI-compatible provider.
"""

from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from typing import NoReturn

from shelf.config import EmbeddingConfig
from shelf.core import stats
from shelf.core.exceptions import EmbeddingGenerationError
from shelf.embedding.interface import EmbeddingInterface, check_vector, require_text

logger = logging.getLogger(__name__)


class HuggingFaceEmbedding(EmbeddingInterface):
    """Embedding via the HuggingFace feature-extraction inference endpoint."""

    def __init__(self, config: EmbeddingConfig):
        self._dimensions = config.dimensions
        self._model = config.model
        self._token = config.huggingface_token
        self._timeout = config.timeout
        self._max_wait = config.huggingface_max_wait
        self._url = f"{config.huggingface_base_url.rstrip('/')}/models/{self._model}"
        logger.info(
            "HuggingFace embedding ready: %s (dimensions=%d, auth=%s)",
            self._model,
            self._dimensions,
            "yes" if self._token else "no",
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _build_request(self, text: str) -> urllib.request.Request:
        payload = json.dumps({
            "inputs": text,
            "options": {"wait_for_model": True},
        }).encode()
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return urllib.request.Request(self._url, data=payload, headers=headers, method="POST")

    def _fail(self, message: str, cause: BaseException | None = None) -> NoReturn:
        stats.record_failure(message)
        logger.error("HuggingFace embedding failed: %s", message)
        raise EmbeddingGenerationError(message, cause=cause) from cause

    def _cold_start_wait(self, error: urllib.error.HTTPError) -> float | None:
        """Seconds to wait if a 503 body says the model is loading, else None."""
        try:
            body = json.loads(error.read() or b"{}")
        except (ValueError, OSError):
            return None
        estimated = body.get("estimated_time") if isinstance(body, dict) else None
        if isinstance(estimated, (int, float)) and not isinstance(estimated, bool):
            return max(0.0, min(float(estimated), self._max_wait))
        return None

    def _post(self, text: str) -> bytes:
        req = self._build_request(text)
        waited = False
        while True:
            try:
                with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                    return resp.read()
            except urllib.error.HTTPError as e:
                if e.code == 503 and not waited:
                    wait = self._cold_start_wait(e)
                    if wait is not None:
                        logger.warning("Embedding model %s is loading, waiting %.1fs", self._model, wait)
                        time.sleep(wait)
                        waited = True
                        continue
                self._fail(f"HTTP {e.code} from embedding endpoint", e)
            except (urllib.error.URLError, http.client.HTTPException, TimeoutError, ConnectionError, OSError) as e:
                self._fail(f"Embedding endpoint unreachable: {e}", e)

    def embed(self, text: str) -> list[float]:
        require_text(text)
        raw = self._post(text)
        try:
            data = json.loads(raw)
        except ValueError as e:
            self._fail(f"Embedding endpoint returned invalid JSON: {raw[:200]!r}", e)

        if isinstance(data, dict):
            self._fail(f"Embedding endpoint returned an error: {data.get('error', data)}")
        # Some deployments wrap a single input's vector in an outer list
        if isinstance(data, list) and len(data) == 1 and isinstance(data[0], list):
            data = data[0]

        try:
            vector = check_vector(data, self._dimensions)
        except EmbeddingGenerationError as e:
            self._fail(str(e), e.cause)
        stats.record_success(text)
        return vector
