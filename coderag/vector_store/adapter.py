"""
Store adapter: embeds documents cache-first and moves them in and out of the
vector store, translating between Document and the store's flat schema.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from pydantic import ValidationError
from tqdm import tqdm

from coderag.config import settings
from coderag.embeddings.cache import EmbeddingCache
from coderag.embeddings.client import EmbeddingsClient
from coderag.models.schemas import (
    CodeMetadata,
    Document,
    DocumentMetadata,
    SearchResult,
    metadata_adapter,
    metadata_to_dict,
)
from coderag.vector_store.base import ScalarMetadata, VectorRecord, VectorStore

DEFAULT_UPSERT_BATCH_SIZE = settings.upsert_batch_size

logger = logging.getLogger(__name__)


@dataclass
class IndexedFile:
    file_hash: str
    documents: int = 0


def flatten_metadata(metadata: DocumentMetadata) -> ScalarMetadata:
    """
    Scalar-only form for the store. Absent values become "" or 0.
    """
    metadata = metadata_adapter.validate_python(metadata_to_dict(metadata))
    flat: ScalarMetadata = {
        "filepath": metadata.filepath,
        "type": metadata.type,
        "language": metadata.language or "",
        "lines_start": metadata.lines.start if metadata.lines else 0,
        "lines_end": metadata.lines.end if metadata.lines else 0,
        "file_hash": metadata.file_hash or "",
        "function": "",
        "class": "",
    }
    if isinstance(metadata, CodeMetadata):
        flat["function"] = metadata.function or ""
        flat["class"] = metadata.class_name or ""
    return flat


def unflatten_metadata(flat: ScalarMetadata) -> DocumentMetadata:
    lines_start = int(flat.get("lines_start") or 0)
    lines_end = int(flat.get("lines_end") or 0)
    payload: Dict[str, object] = {
        "type": flat.get("type") or "code",
        "filepath": flat.get("filepath") or "",
        "language": flat.get("language") or None,
        "lines": {"start": lines_start, "end": max(lines_end, lines_start)} if lines_start > 0 else None,
        "file_hash": flat.get("file_hash") or None,
    }
    if payload["type"] == "code":
        payload["function"] = flat.get("function") or None
        payload["class"] = flat.get("class") or None
    return metadata_adapter.validate_python(payload)


def distance_to_score(distance: float) -> float:
    # Chroma returns a distance (lower is closer); map to a bounded similarity.
    try:
        return max(0.0, min(1.0, 1.0 - float(distance)))
    except (TypeError, ValueError):
        return 0.0


class StoreAdapter:
    """
    Front door to the vector store for the rest of the application.

    Every embedding goes through ``cache`` first. Store and embedding errors
    propagate unchanged; the caller decides how to report them.
    """

    def __init__(
        self,
        store: VectorStore,
        embeddings_client: EmbeddingsClient,
        cache: EmbeddingCache | None = None,
        batch_size: int = DEFAULT_UPSERT_BATCH_SIZE,
        logger_: logging.Logger | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.store = store
        self.embeddings_client = embeddings_client
        self.cache = cache if cache is not None else EmbeddingCache()
        self.batch_size = batch_size
        self.logger = logger_ or logger

    @property
    def collection_name(self) -> str:
        return self.store.collection_name

    def _to_record(self, document: Document) -> VectorRecord:
        try:
            metadata = flatten_metadata(document.metadata)
        except ValidationError as exc:
            raise ValueError(f"Invalid metadata for document {document.id}: {exc}") from exc
        return VectorRecord(id=document.id, text=document.content, metadata=metadata)

    def upsert(self, documents: Sequence[Document], show_progress: bool = False) -> int:
        if not documents:
            return 0

        records = [self._to_record(doc) for doc in documents]
        total = len(records)

        for i in tqdm(
            range(0, total, self.batch_size),
            desc="Indexing",
            unit="batch",
            disable=not show_progress,
        ):
            batch = records[i : i + self.batch_size]
            vectors = self.cache.get_or_compute_many(
                [r.text for r in batch], self.embeddings_client.embed_texts
            )
            for record, vector in zip(batch, vectors):
                record.embedding = vector
            self.store.upsert_documents(batch)
            self.logger.debug("Upserted batch", extra={"count": len(batch), "offset": i})

        self.logger.info("Upserted documents", extra={"count": total, "collection": self.collection_name})
        return total

    def query(self, text: str, k: int = 5) -> List[SearchResult]:
        if k <= 0:
            return []

        embedding = self.cache.get_or_compute(text, self.embeddings_client.embed_text)
        raw_results = self.store.search(embedding, top_k=k)

        results: List[SearchResult] = []
        for record, distance in raw_results:
            results.append(
                SearchResult(
                    id=record.id,
                    content=record.text,
                    metadata=unflatten_metadata(record.metadata),
                    score=distance_to_score(distance),
                )
            )

        self.logger.info(
            "Query completed",
            extra={
                "requested": k,
                "returned": len(results),
                "top_score": round(results[0].score, 3) if results else None,
            },
        )
        return results

    def count(self) -> int:
        return self.store.count()

    def delete_all(self) -> None:
        self.store.clear()
        self.logger.info("Index cleared", extra={"collection": self.collection_name})

    def delete_file(self, filepath: str) -> None:
        self.store.delete_where({"filepath": filepath})

    def replace_file(self, filepath: str, documents: Sequence[Document]) -> int:
        """
        Swap a file's stored documents for ``documents``.

        Every embedding is resolved before anything is deleted, so an embedding
        failure leaves the previous documents in place.
        """
        records = [self._to_record(doc) for doc in documents]
        self.cache.get_or_compute_many([r.text for r in records], self.embeddings_client.embed_texts)
        self.delete_file(filepath)
        return self.upsert(documents)

    def indexed_files(self) -> Dict[str, IndexedFile]:
        """Per stored file: its content hash and how many documents it has."""
        files: Dict[str, IndexedFile] = {}
        for _, meta in self.store.iter_metadatas():
            filepath = meta.get("filepath")
            if not filepath:
                continue
            file_hash = meta.get("file_hash") or ""
            entry = files.setdefault(filepath, IndexedFile(file_hash=file_hash))
            if entry.file_hash != file_hash:
                # Documents from two versions of the file; never treat as current.
                entry.file_hash = ""
            entry.documents += 1
        return files

    def indexed_file_hashes(self) -> Dict[str, str]:
        return {filepath: entry.file_hash for filepath, entry in self.indexed_files().items()}


__all__ = [
    "StoreAdapter",
    "IndexedFile",
    "flatten_metadata",
    "unflatten_metadata",
    "distance_to_score",
    "DEFAULT_UPSERT_BATCH_SIZE",
]
