"""
CLI printing how the index breaks down by document type, language and file.

Example:
    python -m scripts.index_stats --page-size 500 --top-files 10
"""

from __future__ import annotations

import argparse
from collections import Counter
from dataclasses import dataclass, field
from typing import Counter as CounterType

from coderag.vector_store import get_vector_store
from coderag.vector_store.base import VectorStore


@dataclass
class IndexBreakdown:
    total: int = 0
    by_type: CounterType[str] = field(default_factory=Counter)
    by_language: CounterType[str] = field(default_factory=Counter)
    by_file: CounterType[str] = field(default_factory=Counter)


def collect_breakdown(store: VectorStore, page_size: int = 500) -> IndexBreakdown:
    """
    Walk every stored document's metadata and count it per type/language/file.
    """
    breakdown = IndexBreakdown(total=store.count())
    for _, meta in store.iter_metadatas(page_size=page_size):
        breakdown.by_type[str(meta.get("type") or "unknown")] += 1
        breakdown.by_language[str(meta.get("language") or "unknown")] += 1
        breakdown.by_file[str(meta.get("filepath") or "unknown")] += 1
    return breakdown


def main() -> None:
    parser = argparse.ArgumentParser(description="Show document counts per type, language and file.")
    parser.add_argument("--page-size", type=int, default=500, help="Page size for walking the collection")
    parser.add_argument("--top-files", type=int, default=10, help="How many of the largest files to list")
    args = parser.parse_args()

    breakdown = collect_breakdown(get_vector_store(), page_size=args.page_size)

    print(f"Total documents in collection: {breakdown.total}")
    if not breakdown.total:
        return

    print("By type:")
    for name, count in breakdown.by_type.most_common():
        print(f"  {name}: {count}")
    print("By language:")
    for name, count in breakdown.by_language.most_common():
        print(f"  {name}: {count}")
    print(f"Files: {len(breakdown.by_file)} (top {args.top_files} by documents)")
    for name, count in breakdown.by_file.most_common(args.top_files):
        print(f"  {name}: {count}")


if __name__ == "__main__":
    main()
