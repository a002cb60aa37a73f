"""
Utility script to inspect indexed documents without embeddings.

Usage:
    python -m scripts.inspect_index --limit 5 --offset 0
    python -m scripts.inspect_index --file src/server.ts
"""

from __future__ import annotations

import argparse
import json

from coderag.vector_store import get_vector_store

FIELD_ORDER = ["filepath", "type", "language", "lines_start", "lines_end", "function", "class", "file_hash"]


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect stored documents in Chroma.")
    parser.add_argument("--limit", type=int, default=5, help="Number of documents to show")
    parser.add_argument("--offset", type=int, default=0, help="Offset for pagination")
    parser.add_argument("--file", default=None, help="Only show documents of this relative file path")
    args = parser.parse_args()

    store = get_vector_store()
    collection = store.collection
    total = collection.count()

    result = collection.get(
        where={"filepath": args.file} if args.file else None,
        include=["documents", "metadatas"],
        limit=args.limit,
        offset=args.offset,
    )

    ids = result.get("ids") or []
    docs = result.get("documents") or []
    metas = result.get("metadatas") or []

    print(f"Total documents in collection: {total}")
    print(f"Showing {len(ids)} documents (offset={args.offset}, limit={args.limit})")
    for idx, (doc_id, doc, meta) in enumerate(zip(ids, docs, metas), start=1):
        print(f"\n#{idx}: {doc_id}")
        meta = meta or {}
        ordered = {k: meta[k] for k in FIELD_ORDER if meta.get(k) not in (None, "", 0)}
        ordered |= {k: v for k, v in meta.items() if k not in FIELD_ORDER}
        print("Metadata:", json.dumps(ordered, ensure_ascii=False))
        doc = doc or ""
        snippet = doc[:400].replace("\n", " ")
        print("Text:", snippet + ("..." if len(doc) > 400 else ""))


if __name__ == "__main__":
    main()
