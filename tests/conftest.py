"""Pytest configuration and shared fixtures."""

import hashlib
import math
import uuid
from pathlib import Path
from typing import List, Sequence

import chromadb
import pytest

from coderag.embeddings.cache import EmbeddingCache
from coderag.indexing.pipeline import IndexService
from coderag.server.tools import CodebaseTools
from coderag.vector_store.adapter import StoreAdapter
from coderag.vector_store.chroma_store import ChromaVectorStore

EMBEDDING_DIM = 16


class FakeEmbeddingsClient:
    """Deterministic hash-based embeddings; records every call."""

    def __init__(self, fail: bool = False, fail_after: int | None = None):
        self.calls: List[List[str]] = []
        self.fail = fail
        self.fail_after = fail_after

    @property
    def texts_embedded(self) -> int:
        return sum(len(batch) for batch in self.calls)

    @staticmethod
    def vector_for(text: str) -> List[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        raw = [b - 127.5 for b in digest[:EMBEDDING_DIM]]
        norm = math.sqrt(sum(v * v for v in raw)) or 1.0
        return [v / norm for v in raw]

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        if self.fail or (self.fail_after is not None and len(self.calls) >= self.fail_after):
            raise RuntimeError("embedding service unreachable")
        self.calls.append(list(texts))
        return [self.vector_for(t) for t in texts]

    def embed_text(self, text: str) -> List[float]:
        return self.embed_texts([text])[0]


@pytest.fixture(scope="session")
def chroma_client():
    """In-process Chroma client shared by the session; tests use unique collections."""
    return chromadb.EphemeralClient()


@pytest.fixture
def vector_store(chroma_client):
    name = f"test_{uuid.uuid4().hex[:16]}"
    store = ChromaVectorStore(persist_directory="memory", collection_name=name, client=chroma_client)
    yield store
    chroma_client.delete_collection(store.collection_name)


@pytest.fixture
def embeddings():
    return FakeEmbeddingsClient()


@pytest.fixture
def embeddings_factory():
    return FakeEmbeddingsClient


@pytest.fixture
def failing_embeddings():
    return FakeEmbeddingsClient(fail=True)


@pytest.fixture
def adapter(vector_store, embeddings):
    return StoreAdapter(vector_store, embeddings, cache=EmbeddingCache(), batch_size=4)


@pytest.fixture
def index_service(adapter):
    return IndexService(adapter, max_chunk_size=1000, overlap_size=100)


@pytest.fixture
def tools(adapter):
    return CodebaseTools(lambda: adapter)


def write_file(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def small_codebase(tmp_path):
    """Three files: 30-line Python module, empty file, 2000-line JS file with a function."""
    write_file(tmp_path, "small.py", "\n".join(f"value_{i} = {i}" for i in range(30)) + "\n")
    write_file(tmp_path, "empty.py", "")
    js_lines = [
        "function computeTotal(items) {",
        "  let total = 0;",
        "  for (const item of items) {",
        "    total += item.price;",
        "  }",
        "  return total;",
        "}",
    ]
    js_lines += [f"const value{i} = {i};" for i in range(2000 - len(js_lines))]
    write_file(tmp_path, "big.js", "\n".join(js_lines) + "\n")
    return tmp_path


@pytest.fixture
def make_file():
    return write_file
