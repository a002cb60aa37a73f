"""
Indexing pipeline: discover files, chunk, embed, and upsert into the vector store.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from tqdm import tqdm

from coderag.config import settings
from coderag.indexing.assembler import documents_for_file
from coderag.indexing.parser import (
    SourceFile,
    find_source_files,
    is_indexable,
    load_source_file,
    relative_posix,
)
from coderag.models.schemas import Document
from coderag.vector_store.adapter import IndexedFile, StoreAdapter

logger = logging.getLogger(__name__)


@dataclass
class IndexSummary:
    root: str
    documents_indexed: int
    files_indexed: int
    files_skipped: int
    files_failed: int
    elapsed_sec: float
    total_documents: int
    documents: List[Document] = field(default_factory=list, repr=False)


def resolve_root(path: str | Path) -> Path:
    root = Path(path).expanduser().resolve()
    if not root.exists():
        raise FileNotFoundError(f"Directory does not exist: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")
    return root


class IndexService:
    """Builds documents from a source tree and keeps the store in sync with it."""

    def __init__(
        self,
        adapter: StoreAdapter,
        max_chunk_size: int = settings.max_chunk_size,
        overlap_size: int = settings.chunk_overlap,
        exclude_dirs: Iterable[str] | None = None,
        exclude_globs: Iterable[str] | None = None,
        show_progress: bool = False,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.adapter = adapter
        self.max_chunk_size = max_chunk_size
        self.overlap_size = overlap_size
        self.exclude_dirs = list(settings.exclude_dirs if exclude_dirs is None else exclude_dirs)
        self.exclude_globs = list(settings.exclude_globs if exclude_globs is None else exclude_globs)
        self.show_progress = show_progress
        self.logger = logger_ or logging.getLogger(__name__)

    def find_files(self, root: str | Path) -> List[Path]:
        return find_source_files(root, exclude_dirs=self.exclude_dirs, exclude_globs=self.exclude_globs)

    def build_documents(self, source: SourceFile) -> List[Document]:
        return documents_for_file(source, max_chunk_size=self.max_chunk_size, overlap_size=self.overlap_size)

    def _load_sources(self, root: Path) -> tuple[List[SourceFile], int]:
        files = self.find_files(root)
        self.logger.info("Found files to process", extra={"root": str(root), "files": len(files)})

        sources: List[SourceFile] = []
        failed = 0
        for path in files:
            try:
                sources.append(load_source_file(path, root))
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                failed += 1
                self.logger.warning("Failed to read file %s: %s", path, exc)
        return sources, failed

    def process_codebase(self, path: str | Path) -> List[Document]:
        """Documents for every indexable file under ``path``; nothing is written."""
        root = resolve_root(path)
        sources, _ = self._load_sources(root)
        documents: List[Document] = []
        for source in sources:
            documents.extend(self.build_documents(source))
        self.logger.info("Generated document chunks", extra={"documents": len(documents)})
        return documents

    def index_codebase(self, path: str | Path, force: bool = False) -> IndexSummary:
        """
        Index a directory tree.

        ``force`` clears the whole index first. Otherwise a file is skipped only
        when its stored documents carry the current content hash and match the
        number of documents it chunks into; anything else (changed, new, or left
        half-written by an earlier failed run) is replaced file by file.
        """
        started = time.time()
        root = resolve_root(path)

        if force:
            self.adapter.delete_all()
            stored: Dict[str, IndexedFile] = {}
        else:
            stored = self.adapter.indexed_files()

        sources, failed = self._load_sources(root)
        documents: List[Document] = []
        indexed = 0
        skipped = 0

        for source in tqdm(sources, desc="Indexing", unit="file", disable=not self.show_progress):
            file_documents = self.build_documents(source)
            previous = stored.get(source.relative_path)
            if (
                previous is not None
                and previous.file_hash == source.content_hash
                and previous.documents == len(file_documents)
            ):
                skipped += 1
                continue

            if not file_documents:
                if previous is not None:
                    self.adapter.delete_file(source.relative_path)
                continue

            self.adapter.replace_file(source.relative_path, file_documents)
            indexed += 1
            documents.extend(file_documents)

        elapsed = time.time() - started
        summary = IndexSummary(
            root=str(root),
            documents_indexed=len(documents),
            files_indexed=indexed,
            files_skipped=skipped,
            files_failed=failed,
            elapsed_sec=elapsed,
            total_documents=self.adapter.count(),
            documents=documents,
        )
        self.logger.info(
            "Indexing completed",
            extra={
                "root": summary.root,
                "documents_indexed": summary.documents_indexed,
                "files_indexed": indexed,
                "files_skipped": skipped,
                "files_failed": failed,
                "elapsed_sec": round(elapsed, 2),
            },
        )
        return summary

    def index_file(self, path: str | Path, root: str | Path) -> int:
        """
        Re-index one file from scratch: the whole file is chunked again and
        replaces its stored documents.
        """
        root_path = resolve_root(root)
        source = load_source_file(path, root_path)
        documents = self.build_documents(source)
        if documents:
            self.adapter.replace_file(source.relative_path, documents)
        else:
            self.adapter.delete_file(source.relative_path)
        self.logger.info("Indexed file", extra={"file": source.relative_path, "documents": len(documents)})
        return len(documents)

    def remove_file(self, path: str | Path, root: str | Path) -> None:
        relative = relative_posix(path, resolve_root(root))
        self.adapter.delete_file(relative)
        self.logger.info("Removed file from index", extra={"file": relative})

    def is_indexable(self, path: str | Path, root: str | Path) -> bool:
        try:
            relative = relative_posix(path, root)
        except ValueError:
            return False
        return is_indexable(relative, self.exclude_dirs, self.exclude_globs)


__all__ = ["IndexService", "IndexSummary", "resolve_root"]
