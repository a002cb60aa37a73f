"""
CLI for indexing a codebase into the vector store.

Examples:
    python -m scripts.index_codebase --path ./my-project
    python -m scripts.index_codebase --path /home/user/projects/web-app --verbose
    python -m scripts.index_codebase --path ./src --watch
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from typing import List, Sequence

from coderag.config import setup_logging
from coderag.indexing.pipeline import IndexService
from coderag.indexing.watcher import watch_codebase
from coderag.models.schemas import Document
from coderag.vector_store import get_store_adapter

USAGE = "coderag-index --path /path/to/codebase [options]"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coderag-index",
        usage=USAGE,
        description="Index a codebase directory for semantic search.",
    )
    parser.add_argument("--path", help="Path to the codebase directory to index (required)")
    parser.add_argument("--force", action="store_true", help="Force reindexing even if already indexed")
    parser.add_argument("--watch", action="store_true", help="Watch for file changes and reindex automatically")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show detailed statistics")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def print_document_stats(documents: List[Document]) -> None:
    by_type = Counter(doc.metadata.type for doc in documents)
    by_language = Counter(doc.metadata.language for doc in documents if doc.metadata.language)
    total_chars = sum(len(doc.content) for doc in documents)

    print("Document statistics:")
    print(f"   Types: {dict(by_type)}")
    print(f"   Languages: {dict(by_language)}")
    if documents:
        print(f"   Average size: {total_chars / len(documents):.0f} characters")


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if not args.path:
        print(f"Usage: {USAGE}", file=sys.stderr)
        return 1

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    logger = logging.getLogger(__name__)

    try:
        service = IndexService(get_store_adapter(), show_progress=True, logger_=logger)

        if args.watch:
            summary = service.index_codebase(args.path, force=args.force)
            print(f"Initial indexing: {summary.documents_indexed} documents, {summary.total_documents} in database")
            print(f"Watching for changes in: {args.path} (Ctrl+C to stop)")
            watch_codebase(service, args.path)
            return 0

        print(f"Starting indexing of: {args.path}")
        print(f"Force reindex: {'Yes' if args.force else 'No'}")
        summary = service.index_codebase(args.path, force=args.force)
    except KeyboardInterrupt:
        print("Stopping watcher...")
        return 0
    except Exception:
        logger.exception("Indexing failed")
        return 1

    if summary.documents_indexed == 0:
        print(f"No new documents to index ({summary.files_skipped} unchanged files skipped)")
        return 0

    if args.verbose:
        print_document_stats(summary.documents)

    rate = summary.documents_indexed / summary.elapsed_sec if summary.elapsed_sec > 0 else 0.0
    print("Indexing complete!")
    print(f"   Documents processed: {summary.documents_indexed}")
    print(f"   Files indexed: {summary.files_indexed} (skipped {summary.files_skipped}, failed {summary.files_failed})")
    print(f"   Processing time: {summary.elapsed_sec:.2f}s")
    print(f"   Total in database: {summary.total_documents}")
    print(f"   Average: {rate:.0f} docs/second")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
