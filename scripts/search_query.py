"""
CLI for searching the vector index with a text query.

Example:
    python -m scripts.search_query --query "database connection pool" --top-k 5
"""

from __future__ import annotations

import argparse

from coderag.vector_store import get_store_adapter


def main() -> None:
    parser = argparse.ArgumentParser(description="Search indexed chunks by text query.")
    parser.add_argument("--query", "-q", required=True, help="Query text")
    parser.add_argument("--top-k", type=int, default=5, help="How many results to return")
    parser.add_argument("--snippet", type=int, default=300, help="Snippet length in characters")
    args = parser.parse_args()

    adapter = get_store_adapter()
    results = adapter.query(args.query, k=args.top_k)

    if not results:
        print("No results")
        return

    for idx, result in enumerate(results, start=1):
        meta = result.metadata
        lines = f":{meta.lines.start}-{meta.lines.end}" if meta.lines else ""
        snippet = result.content[: args.snippet].replace("\n", " ")
        print(f"\n#{idx} score={result.score:.4f} id={result.id}")
        print(f"file: {meta.filepath}{lines} ({meta.type}, {meta.language or 'text'})")
        print("text:", snippet + ("..." if len(result.content) > args.snippet else ""))


if __name__ == "__main__":
    main()
