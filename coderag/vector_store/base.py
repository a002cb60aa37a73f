"""
Vector store interface and shared types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Protocol, Tuple

# Chroma only stores scalar metadata values.
ScalarMetadata = Dict[str, Any]


@dataclass
class VectorRecord:
    id: str
    text: str
    metadata: ScalarMetadata
    embedding: List[float] = field(default_factory=list)


class VectorStore(Protocol):
    collection_name: str

    def clear(self) -> None:
        ...

    def upsert_documents(self, documents: List[VectorRecord]) -> None:
        ...

    def search(self, query_embedding: List[float], top_k: int) -> List[Tuple[VectorRecord, float]]:
        ...

    def count(self) -> int:
        ...

    def delete_where(self, where: Dict[str, Any]) -> None:
        ...

    def iter_metadatas(self, page_size: int = 500) -> Iterator[Tuple[str, ScalarMetadata]]:
        ...


__all__ = ["VectorRecord", "VectorStore", "ScalarMetadata"]
