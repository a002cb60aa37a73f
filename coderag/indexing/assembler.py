"""
Turn chunks into Documents with deterministic ids and typed metadata.

Ids follow ``{relative_path}:{kind}:{discriminator}``: structural chunks use
the detected name, windowed chunks their running index. Re-running on an
unchanged file therefore reproduces the same ids, which lets the store upsert
in place.
"""

from __future__ import annotations

from typing import Dict, List

from coderag.indexing.chunker import (
    CHUNK_OVERLAP,
    MAX_CHUNK_SIZE,
    Chunk,
    chunk_text,
    extract_structural_chunks,
)
from coderag.indexing.parser import DOC_LANGUAGES, SourceFile, content_hash
from coderag.models.schemas import CodeMetadata, DocMetadata, Document, LineRange


def make_document_id(relative_path: str, kind: str, discriminator: str | int) -> str:
    return f"{relative_path}:{kind}:{discriminator}"


def _line_range(chunk: Chunk) -> LineRange:
    return LineRange(start=chunk.start_line, end=chunk.end_line)


def build_documents(
    content: str,
    relative_path: str,
    language: str,
    max_chunk_size: int = MAX_CHUNK_SIZE,
    overlap_size: int = CHUNK_OVERLAP,
    file_hash: str | None = None,
) -> List[Document]:
    if not content.strip():
        return []

    file_hash = file_hash or content_hash(content)
    windows = chunk_text(content, max_chunk_size=max_chunk_size, overlap_size=overlap_size)

    if language in DOC_LANGUAGES:
        return [
            Document(
                id=make_document_id(relative_path, "doc", index),
                content=chunk.content,
                metadata=DocMetadata(
                    filepath=relative_path,
                    language=language,
                    lines=_line_range(chunk),
                    file_hash=file_hash,
                ),
            )
            for index, chunk in enumerate(windows)
        ]

    documents: List[Document] = []
    seen_names: Dict[str, int] = {}

    for chunk in extract_structural_chunks(content, language, max_chunk_size=max_chunk_size):
        key = f"{chunk.kind}:{chunk.name}"
        seen_names[key] = seen_names.get(key, 0) + 1
        # Overloads, nested helpers and `anonymous` repeat; the line keeps ids unique.
        discriminator = chunk.name if seen_names[key] == 1 else f"{chunk.name}@{chunk.start_line}"

        documents.append(
            Document(
                id=make_document_id(relative_path, chunk.kind, discriminator),
                content=chunk.content,
                metadata=CodeMetadata(
                    filepath=relative_path,
                    language=language,
                    lines=_line_range(chunk),
                    file_hash=file_hash,
                    function=chunk.name if chunk.kind == "function" else None,
                    class_name=chunk.name if chunk.kind == "class" else None,
                ),
            )
        )

    for index, chunk in enumerate(windows):
        documents.append(
            Document(
                id=make_document_id(relative_path, "chunk", index),
                content=chunk.content,
                metadata=CodeMetadata(
                    filepath=relative_path,
                    language=language,
                    lines=_line_range(chunk),
                    file_hash=file_hash,
                ),
            )
        )

    return documents


def documents_for_file(
    source: SourceFile,
    max_chunk_size: int = MAX_CHUNK_SIZE,
    overlap_size: int = CHUNK_OVERLAP,
) -> List[Document]:
    return build_documents(
        source.content,
        source.relative_path,
        source.language,
        max_chunk_size=max_chunk_size,
        overlap_size=overlap_size,
        file_hash=source.content_hash,
    )


__all__ = ["make_document_id", "build_documents", "documents_for_file"]
