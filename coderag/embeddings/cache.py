"""
In-process embedding cache keyed by content hash.
"""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from typing import Callable, Dict, List, Protocol, Sequence

logger = logging.getLogger(__name__)

Vector = List[float]
EmbedFn = Callable[[str], Vector]
EmbedManyFn = Callable[[Sequence[str]], List[Vector]]


def cache_key(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class EvictionPolicy(Protocol):
    def touch(self, key: str) -> None:
        """Record a hit on an existing key."""

    def admit(self, key: str) -> List[str]:
        """Record a new key; return keys the cache must drop."""

    def forget(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


class UnboundedPolicy:
    """Never evicts. Memory grows with the number of distinct texts."""

    def touch(self, key: str) -> None:
        return None

    def admit(self, key: str) -> List[str]:
        return []

    def forget(self, key: str) -> None:
        return None

    def clear(self) -> None:
        return None


class LRUPolicy:
    """Keeps at most ``max_size`` keys, dropping the least recently used."""

    def __init__(self, max_size: int) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._order: "OrderedDict[str, None]" = OrderedDict()

    def touch(self, key: str) -> None:
        if key in self._order:
            self._order.move_to_end(key)

    def admit(self, key: str) -> List[str]:
        self._order[key] = None
        self._order.move_to_end(key)
        evicted: List[str] = []
        while len(self._order) > self.max_size:
            oldest, _ = self._order.popitem(last=False)
            evicted.append(oldest)
        return evicted

    def forget(self, key: str) -> None:
        self._order.pop(key, None)

    def clear(self) -> None:
        self._order.clear()


def policy_for_size(max_size: int) -> EvictionPolicy:
    """0 means unbounded."""
    return LRUPolicy(max_size) if max_size > 0 else UnboundedPolicy()


class EmbeddingCache:
    def __init__(self, embed_fn: EmbedFn | None = None, policy: EvictionPolicy | None = None) -> None:
        self.embed_fn = embed_fn
        self.policy = policy or UnboundedPolicy()
        self._vectors: Dict[str, Vector] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, text: str) -> bool:
        return cache_key(text) in self._vectors

    def get(self, text: str) -> Vector | None:
        key = cache_key(text)
        vector = self._vectors.get(key)
        if vector is None:
            self._misses += 1
            return None
        self._hits += 1
        self.policy.touch(key)
        return vector

    def put(self, text: str, vector: Vector) -> None:
        key = cache_key(text)
        if key in self._vectors:
            self._vectors[key] = vector
            self.policy.touch(key)
            return
        self._vectors[key] = vector
        for evicted in self.policy.admit(key):
            self._vectors.pop(evicted, None)

    def get_or_compute(self, text: str, embed_fn: EmbedFn | None = None) -> Vector:
        """
        Return the cached vector for ``text`` or compute, store and return it.

        A hit returns the very object stored on the miss; the embedder runs at
        most once per distinct text while the entry is cached.
        """
        cached = self.get(text)
        if cached is not None:
            return cached

        fn = embed_fn or self.embed_fn
        if fn is None:
            raise RuntimeError("EmbeddingCache has no embedding function")
        vector = fn(text)
        self.put(text, vector)
        return vector

    def get_or_compute_many(self, texts: Sequence[str], embed_many: EmbedManyFn) -> List[Vector]:
        """
        Batch variant: only distinct misses go to ``embed_many``, in one call.
        """
        results: List[Vector | None] = [self.get(text) for text in texts]

        missing: List[str] = []
        seen = set()
        for text, vector in zip(texts, results):
            if vector is None and text not in seen:
                missing.append(text)
                seen.add(text)

        if missing:
            computed = embed_many(missing)
            if len(computed) != len(missing):
                raise RuntimeError(
                    f"Embedding service returned {len(computed)} vectors for {len(missing)} texts"
                )
            fresh = dict(zip(missing, computed))
            for text, vector in fresh.items():
                self.put(text, vector)
            results = [vector if vector is not None else fresh[text] for text, vector in zip(texts, results)]

        return [vector for vector in results if vector is not None]

    def clear(self) -> None:
        self._vectors.clear()
        self.policy.clear()
        self._hits = 0
        self._misses = 0
        logger.info("Embedding cache cleared")

    def stats(self) -> dict:
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0
        return {
            "size": len(self._vectors),
            "max_size": getattr(self.policy, "max_size", None),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{hit_rate:.1f}%",
        }


__all__ = [
    "EmbeddingCache",
    "EvictionPolicy",
    "UnboundedPolicy",
    "LRUPolicy",
    "policy_for_size",
    "cache_key",
]
