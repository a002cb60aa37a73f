"""
Embeddings over an OpenAI-compatible ``/embeddings`` endpoint.

``EMBEDDING_BASE_URL`` points the client at any server speaking the same
protocol (a local inference server, a proxy); the default is OpenAI itself.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from openai import OpenAI

from coderag.config import settings

DEFAULT_EMBEDDING_MODEL = settings.embedding_model_name
DEFAULT_EMBED_BATCH_SIZE = settings.embedding_batch_size

logger = logging.getLogger(__name__)


class EmbeddingsClient:
    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
        client: OpenAI | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.model = model
        self.batch_size = batch_size
        if client is None:
            api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
            client = OpenAI(api_key=api_key, base_url=settings.embedding_base_url)
        self.client = client

    def _embed_batch(self, batch: List[str]) -> List[List[float]]:
        response = self.client.embeddings.create(model=self.model, input=batch)
        # Items carry their input position; do not rely on response order.
        items = sorted(response.data, key=lambda item: item.index)
        if len(items) != len(batch):
            raise RuntimeError(f"Embedding endpoint returned {len(items)} vectors for {len(batch)} inputs")
        return [item.embedding for item in items]

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed ``texts`` in order, ``batch_size`` inputs per request."""
        vectors: List[List[float]] = []
        for offset in range(0, len(texts), self.batch_size):
            vectors.extend(self._embed_batch(list(texts[offset : offset + self.batch_size])))
        if texts:
            logger.debug(
                "Embedded texts",
                extra={"count": len(texts), "model": self.model, "requests": -(-len(texts) // self.batch_size)},
            )
        return vectors

    def embed_text(self, text: str) -> List[float]:
        return self.embed_texts([text])[0]


__all__ = ["EmbeddingsClient", "DEFAULT_EMBEDDING_MODEL", "DEFAULT_EMBED_BATCH_SIZE"]
