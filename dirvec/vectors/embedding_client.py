"""OpenAI embedding client with whole-request retry."""

from __future__ import annotations

from collections.abc import Sequence

import openai

from ..core.exceptions import EmbeddingProviderError
from ..core.types import DEFAULT_DIMENSIONS, Embedding
from ..utils.logger import get_logger
from ..utils.retry import RetryStrategy

logger = get_logger("dirvec.vectors.embeddings")

# Errors worth repeating the whole request for
RETRYABLE_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
)


class EmbeddingClient:
    """Wrapper for OpenAI embeddings API."""

    def __init__(
        self,
        client: openai.OpenAI | None = None,
        model: str = "text-embedding-ada-002",
        dimensions: int = DEFAULT_DIMENSIONS,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        api_key: str | None = None,
    ):
        """
        Initialize OpenAI client.

        Args:
            client: Existing OpenAI client to reuse (one per process run)
            model: Embedding model identifier
            dimensions: Expected vector length for every embedding
            max_retries: Whole-request retries on rate limit / connection errors
            retry_delay: Base delay between retries (seconds)
            api_key: OpenAI API key when no client is given (or None to use env var)
        """
        self.client = client or openai.OpenAI(api_key=api_key, max_retries=0)
        self.model = model
        self.dimension = dimensions
        self.retry = RetryStrategy(
            max_retries=max_retries,
            base_delay=retry_delay,
            exceptions=RETRYABLE_ERRORS,
        )
        logger.info(f"Embedding client initialized: {model} ({self.dimension}D)")

    def embed_many(self, texts: Sequence[str]) -> list[Embedding]:
        """
        Generate embeddings for a batch of texts.

        The result has one embedding per input text, in input order. The
        batch is all-or-nothing: any provider failure fails the whole call.

        Args:
            texts: Ordered text strings to embed

        Returns:
            List of embedding vectors aligned with ``texts``

        Raises:
            EmbeddingProviderError: If the provider fails or returns a
                malformed response
        """
        texts = list(texts)
        if not texts:
            return []

        context = {"model": self.model, "batch_size": len(texts)}

        try:
            response = self.retry.execute(self._create, texts)
        except openai.OpenAIError as e:
            logger.error(f"Embedding request failed for {len(texts)} texts: {e}")
            raise EmbeddingProviderError(
                f"Embedding provider error: {e}", context
            ) from e

        items = sorted(response.data, key=lambda item: item.index)
        if len(items) != len(texts):
            raise EmbeddingProviderError(
                f"Embedding count mismatch: {len(items)} != {len(texts)}", context
            )

        embeddings = [list(item.embedding) for item in items]
        for position, embedding in enumerate(embeddings):
            if len(embedding) != self.dimension:
                raise EmbeddingProviderError(
                    f"Unexpected embedding length {len(embedding)} "
                    f"(expected {self.dimension})",
                    {**context, "position": position},
                )

        logger.debug(f"Generated {len(embeddings)} embeddings")
        return embeddings

    def embed_one(self, text: str) -> Embedding:
        """
        Generate embedding for single text.

        Args:
            text: Text string to embed

        Returns:
            Embedding vector
        """
        return self.embed_many([text])[0]

    def _create(self, texts: list[str]):
        payload = texts[0] if len(texts) == 1 else texts
        return self.client.embeddings.create(model=self.model, input=payload)
