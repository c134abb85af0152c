"""AWS Bedrock Titan Text Embeddings V2 provider."""

import json
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from shelf.config import EmbeddingConfig
from shelf.core import stats
from shelf.core.exceptions import EmbeddingGenerationError
from shelf.embedding.interface import EmbeddingInterface, check_vector, require_text

logger = logging.getLogger(__name__)


class BedrockEmbedding(EmbeddingInterface):
    """Embedding via AWS Bedrock Titan Text Embeddings V2.

    Configurable output dimensions (256/512/1024).
    """

    def __init__(self, config: EmbeddingConfig):
        self._dimensions = config.dimensions
        self._model_id = config.bedrock_model
        self._client = boto3.client(
            "bedrock-runtime",
            region_name=config.bedrock_region,
        )
        logger.info(
            "Bedrock embedding ready: %s (region=%s, dimensions=%d)",
            self._model_id,
            config.bedrock_region,
            self._dimensions,
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> list[float]:
        """Embed a single text string via Titan V2. Returns a normalized float vector."""
        require_text(text)
        body = json.dumps({
            "inputText": text,
            "dimensions": self._dimensions,
            "normalize": True,
        })

        try:
            response = self._client.invoke_model(
                modelId=self._model_id,
                contentType="application/json",
                accept="application/json",
                body=body,
            )
            result = json.loads(response["body"].read())
            vector = check_vector(result.get("embedding"), self._dimensions)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            stats.record_failure(code or str(e))
            raise EmbeddingGenerationError(f"Bedrock invoke_model failed: {code or e}", cause=e) from e
        except (BotoCoreError, ValueError, KeyError, AttributeError) as e:
            stats.record_failure(str(e))
            raise EmbeddingGenerationError(f"Bedrock returned an unusable response: {e}", cause=e) from e
        except EmbeddingGenerationError as e:
            stats.record_failure(str(e))
            raise

        stats.record_success(text)
        return vector
