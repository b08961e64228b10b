# infrastructure/embedding_services.py
"""Embedding generation through the OpenAI embeddings endpoint"""
import logging
import numbers
from typing import List

import openai
from openai import AsyncOpenAI

from config import settings
from core.exceptions import MalformedResponseError
from core.interfaces import IEmbeddingService
from infrastructure.openai_client import to_provider_error

logger = logging.getLogger(settings.LOGGER_NAME)

class OpenAIEmbeddingService(IEmbeddingService):
    """
    One external call per text, no batching.

    Failures surface as ProviderError with a kind (authentication, rate_limit,
    timeout, network, api_error) or as MalformedResponseError. Nothing is
    retried here.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model_name: str = settings.EMBEDDING_MODEL_NAME,
        dimension: int = settings.EMBEDDING_DIM,
    ):
        self._client = client
        self.model_name = model_name
        self.dimension = dimension

    async def embed(self, text: str) -> List[float]:
        try:
            response = await self._client.embeddings.create(model=self.model_name, input=text)
        except openai.OpenAIError as e:
            error = to_provider_error(e, "embedding")
            logger.error(f"[EMBED] Provider call failed: {error}")
            raise error from e

        return self._parse(response)

    def _parse(self, response) -> List[float]:
        """Validate eagerly: data[0].embedding must be a numeric vector of the configured length."""
        data = getattr(response, "data", None)
        if not data:
            raise MalformedResponseError("Embedding response has no data", "embedding")

        vector = getattr(data[0], "embedding", None)
        if not isinstance(vector, list) or not vector:
            raise MalformedResponseError("Embedding response has no embedding vector", "embedding")

        if not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in vector):
            raise MalformedResponseError("Embedding vector contains non-numeric values", "embedding")

        if len(vector) != self.dimension:
            raise MalformedResponseError(
                "Embedding vector has unexpected length",
                "embedding",
                {"expected": self.dimension, "got": len(vector)},
            )

        return [float(v) for v in vector]
