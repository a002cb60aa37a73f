"""
Vector store abstractions and factories.
"""

from coderag.config import settings
from coderag.embeddings.cache import EmbeddingCache, policy_for_size
from coderag.embeddings.client import EmbeddingsClient
from coderag.vector_store.adapter import StoreAdapter
from coderag.vector_store.chroma_store import ChromaVectorStore

DEFAULT_VECTOR_STORE_BACKEND = settings.vector_store_backend


def get_vector_store(backend: str | None = None):
    """
    Factory to obtain configured VectorStore instance.
    Supports a local persistent Chroma directory or a Chroma server over HTTP.
    """
    backend = (backend or DEFAULT_VECTOR_STORE_BACKEND).lower()
    if backend == "chroma":
        return ChromaVectorStore()
    if backend == "chroma_http":
        return ChromaVectorStore.from_http()
    raise ValueError(f"Unsupported vector store backend: {backend}")


def get_embedding_cache() -> EmbeddingCache:
    return EmbeddingCache(policy=policy_for_size(settings.embedding_cache_max_size))


def get_store_adapter(backend: str | None = None) -> StoreAdapter:
    return StoreAdapter(
        get_vector_store(backend),
        EmbeddingsClient(),
        cache=get_embedding_cache(),
        batch_size=settings.upsert_batch_size,
    )


__all__ = [
    "DEFAULT_VECTOR_STORE_BACKEND",
    "get_vector_store",
    "get_embedding_cache",
    "get_store_adapter",
    "ChromaVectorStore",
    "StoreAdapter",
]
