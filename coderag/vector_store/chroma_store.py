"""
Chroma-based VectorStore implementation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Tuple

import chromadb

from coderag.config import settings
from coderag.vector_store.base import ScalarMetadata, VectorRecord, VectorStore

CHROMA_COLLECTION = settings.collection_name
CHROMA_PERSIST_DIR = settings.vector_store_path
# Cosine distance keeps 1 - distance inside [0, 1] for normalised embeddings.
CHROMA_COLLECTION_METADATA = {"hnsw:space": "cosine", "description": "Codebase embeddings for RAG"}

logger = logging.getLogger(__name__)


class ChromaVectorStore(VectorStore):
    def __init__(
        self,
        persist_directory: str | None = None,
        collection_name: str = CHROMA_COLLECTION,
        client: Any | None = None,
    ) -> None:
        self.persist_directory = persist_directory or CHROMA_PERSIST_DIR
        self.collection_name = collection_name
        self.client = client or chromadb.PersistentClient(path=self.persist_directory)
        self.collection = self._get_or_create()
        logger.info(
            "ChromaVectorStore initialised",
            extra={"persist_directory": self.persist_directory, "collection": self.collection_name},
        )

    @classmethod
    def from_http(
        cls,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        collection_name: str = CHROMA_COLLECTION,
    ) -> "ChromaVectorStore":
        client = chromadb.HttpClient(host=host, port=port)
        return cls(persist_directory=f"http://{host}:{port}", collection_name=collection_name, client=client)

    def _get_or_create(self):
        return self.client.get_or_create_collection(self.collection_name, metadata=CHROMA_COLLECTION_METADATA)

    def clear(self) -> None:
        self.client.delete_collection(self.collection_name)
        self.collection = self._get_or_create()
        logger.info("Chroma collection cleared and recreated", extra={"collection": self.collection_name})

    def upsert_documents(self, documents: List[VectorRecord]) -> None:
        if not documents:
            return

        ids = [doc.id for doc in documents]
        embeddings = [doc.embedding for doc in documents]
        metadatas = [doc.metadata for doc in documents]
        texts = [doc.text for doc in documents]

        self.collection.upsert(ids=ids, embeddings=embeddings, metadatas=metadatas, documents=texts)
        logger.info("Upserted documents into Chroma", extra={"count": len(documents), "collection": self.collection_name})

    def search(self, query_embedding: List[float], top_k: int) -> List[Tuple[VectorRecord, float]]:
        if top_k <= 0 or self.count() == 0:
            return []

        result = self.collection.query(
            query_embeddings=[query_embedding],
            n_results=top_k,
            include=["documents", "metadatas", "distances"],
        )

        ids = (result.get("ids") or [[]])[0] or []
        texts = (result.get("documents") or [[]])[0] or []
        metadatas = (result.get("metadatas") or [[]])[0] or []
        distances = (result.get("distances") or [[]])[0] or []

        records: List[Tuple[VectorRecord, float]] = []
        for doc_id, text, metadata, distance in zip(ids, texts, metadatas, distances):
            record = VectorRecord(id=doc_id, text=text or "", metadata=dict(metadata or {}))
            records.append((record, float(distance)))

        return records

    def count(self) -> int:
        return self.collection.count()

    def delete_where(self, where: Dict[str, Any]) -> None:
        self.collection.delete(where=where)
        logger.info("Deleted documents from Chroma", extra={"where": where, "collection": self.collection_name})

    def iter_metadatas(self, page_size: int = 500) -> Iterator[Tuple[str, ScalarMetadata]]:
        total = self.count()
        offset = 0
        while offset < total:
            result = self.collection.get(include=["metadatas"], limit=page_size, offset=offset)
            ids = result.get("ids") or []
            metas = result.get("metadatas") or []
            if not ids:
                break
            for doc_id, meta in zip(ids, metas):
                yield doc_id, dict(meta or {})
            offset += len(ids)


__all__ = ["ChromaVectorStore", "CHROMA_COLLECTION", "CHROMA_PERSIST_DIR"]
