"""Tests for coderag.indexing.pipeline and coderag.indexing.watcher."""

import os
import threading

import pytest
from watchfiles import Change

from coderag.embeddings.cache import EmbeddingCache
from coderag.indexing.parser import (
    content_hash,
    find_source_files,
    is_excluded,
    load_source_file,
    relative_posix,
)
from coderag.indexing.pipeline import IndexService, resolve_root
from coderag.indexing.watcher import handle_changes, watch_codebase
from coderag.vector_store.adapter import StoreAdapter


def stored_ids(adapter, filepath=None):
    return {
        doc_id
        for doc_id, meta in adapter.store.iter_metadatas()
        if filepath is None or meta.get("filepath") == filepath
    }


class TestIndexCodebase:
    def test_three_file_codebase(self, index_service, adapter, small_codebase):
        summary = index_service.index_codebase(small_codebase)

        assert summary.files_indexed == 2
        assert summary.files_failed == 0
        assert summary.documents_indexed == adapter.count() == summary.total_documents

        ids = stored_ids(adapter)
        assert "small.py:chunk:0" in ids
        assert "big.js:function:computeTotal" in ids
        assert not any(i.startswith("empty.py:") for i in ids)

        windows = [d for d in summary.documents if d.id.startswith("big.js:chunk:")]
        assert len(windows) > 1
        assert windows[-1].metadata.lines.end == 2000

        compute = next(d for d in summary.documents if d.id == "big.js:function:computeTotal")
        assert (compute.metadata.lines.start, compute.metadata.lines.end) == (1, 7)
        assert compute.metadata.function == "computeTotal"

    def test_small_file_is_a_single_window(self, index_service, small_codebase):
        summary = index_service.index_codebase(small_codebase)
        small = [d for d in summary.documents if d.metadata.filepath == "small.py"]
        assert [d.id for d in small] == ["small.py:chunk:0"]
        assert (small[0].metadata.lines.start, small[0].metadata.lines.end) == (1, 30)

    def test_force_reindex_is_idempotent(self, index_service, adapter, small_codebase):
        index_service.index_codebase(small_codebase)
        first = adapter.count()
        summary = index_service.index_codebase(small_codebase, force=True)
        assert adapter.count() == first
        assert summary.documents_indexed == first

    def test_unchanged_files_are_skipped(self, index_service, adapter, embeddings, small_codebase):
        index_service.index_codebase(small_codebase)
        calls = len(embeddings.calls)

        summary = index_service.index_codebase(small_codebase)

        assert summary.documents_indexed == 0
        assert summary.files_skipped == 2
        assert len(embeddings.calls) == calls

    def test_changed_file_replaces_its_documents(self, index_service, adapter, small_codebase, make_file):
        index_service.index_codebase(small_codebase)
        new_content = "def only():\n    return 1\n"
        make_file(small_codebase, "small.py", new_content)

        summary = index_service.index_codebase(small_codebase)

        assert summary.files_indexed == 1
        assert summary.files_skipped == 1
        assert stored_ids(adapter, "small.py") == {"small.py:function:only", "small.py:chunk:0"}
        assert adapter.indexed_file_hashes()["small.py"] == content_hash(new_content)

    def test_unreadable_file_is_counted_and_skipped(self, index_service, adapter, small_codebase):
        (small_codebase / "broken.py").write_bytes(b"\xff\xfe\x00 not utf-8 \x80")

        summary = index_service.index_codebase(small_codebase)

        assert summary.files_failed == 1
        assert summary.files_indexed == 2
        assert not stored_ids(adapter, "broken.py")

    def test_missing_root(self, index_service, tmp_path):
        with pytest.raises(FileNotFoundError, match="Directory does not exist"):
            index_service.index_codebase(tmp_path / "nope")

    def test_root_must_be_a_directory(self, index_service, make_file, tmp_path):
        path = make_file(tmp_path, "a.py", "x = 1\n")
        with pytest.raises(NotADirectoryError):
            index_service.index_codebase(path)

    def test_process_codebase_writes_nothing(self, index_service, adapter, small_codebase):
        documents = index_service.process_codebase(small_codebase)
        assert documents
        assert adapter.count() == 0

    def test_documentation_is_indexed_as_doc(self, index_service, adapter, make_file, tmp_path):
        make_file(tmp_path, "docs/guide.md", "# Guide\n\nRun the installer.\n")
        summary = index_service.index_codebase(tmp_path)
        assert [d.id for d in summary.documents] == ["docs/guide.md:doc:0"]
        assert summary.documents[0].metadata.type == "doc"

    def test_symlink_to_file_outside_root(self, index_service, adapter, make_file, tmp_path):
        shared = make_file(tmp_path, "shared/common.py", "def shared():\n    return 1\n")
        repo = tmp_path / "repo"
        make_file(repo, "main.py", "x = 1\n")
        os.symlink(shared, repo / "link.py")

        summary = index_service.index_codebase(repo)

        assert summary.files_failed == 0
        assert summary.files_indexed == 2
        assert stored_ids(adapter, "link.py") == {"link.py:function:shared", "link.py:chunk:0"}


class TestRecovery:
    def test_failed_run_is_completed_by_next_run(self, vector_store, embeddings_factory, small_codebase):
        flaky = StoreAdapter(vector_store, embeddings_factory(fail_after=1), cache=EmbeddingCache(), batch_size=4)
        with pytest.raises(RuntimeError):
            IndexService(flaky, max_chunk_size=1000, overlap_size=100).index_codebase(small_codebase)

        healthy = StoreAdapter(vector_store, embeddings_factory(), cache=EmbeddingCache(), batch_size=4)
        service = IndexService(healthy, max_chunk_size=1000, overlap_size=100)
        summary = service.index_codebase(small_codebase)
        expected = service.process_codebase(small_codebase)

        assert summary.files_skipped == 1
        assert healthy.count() == len(expected)
        assert stored_ids(healthy) == {d.id for d in expected}

    def test_partially_written_file_is_rewritten(self, index_service, adapter, small_codebase):
        index_service.index_codebase(small_codebase)
        big_ids = sorted(stored_ids(adapter, "big.js"))
        adapter.store.collection.delete(ids=big_ids[:5])

        summary = index_service.index_codebase(small_codebase)

        assert summary.files_indexed == 1
        assert summary.files_skipped == 1
        assert stored_ids(adapter, "big.js") == set(big_ids)

    def test_embedding_failure_keeps_previous_documents(
        self, index_service, adapter, vector_store, embeddings_factory, small_codebase, make_file
    ):
        index_service.index_codebase(small_codebase)
        old_hash = adapter.indexed_file_hashes()["small.py"]
        make_file(small_codebase, "small.py", "def changed():\n    return 2\n")

        broken = StoreAdapter(vector_store, embeddings_factory(fail=True), cache=EmbeddingCache())
        with pytest.raises(RuntimeError):
            IndexService(broken, max_chunk_size=1000, overlap_size=100).index_codebase(small_codebase)

        assert stored_ids(adapter, "small.py") == {"small.py:chunk:0"}
        assert adapter.indexed_file_hashes()["small.py"] == old_hash


class TestDiscovery:
    def test_excluded_and_unknown_files_are_ignored(self, make_file, tmp_path):
        make_file(tmp_path, "src/main.js", "let a = 1;\n")
        make_file(tmp_path, "node_modules/lib/index.js", "let b = 2;\n")
        make_file(tmp_path, "dist/out.js", "let c = 3;\n")
        make_file(tmp_path, "src/vendor.min.js", "let d=4;\n")
        make_file(tmp_path, "image.bin", "xx")

        files = find_source_files(
            tmp_path,
            exclude_dirs=["node_modules", "dist"],
            exclude_globs=["*.min.js"],
        )
        assert [p.relative_to(tmp_path).as_posix() for p in files] == ["src/main.js"]

    def test_is_excluded(self):
        assert is_excluded("a/node_modules/b.js", ["node_modules"])
        assert not is_excluded("node_modules.js", ["node_modules"])
        assert is_excluded("lib/app.bundle.js", [], ["*.bundle.js"])

    def test_service_is_indexable(self, index_service, tmp_path):
        assert index_service.is_indexable(tmp_path / "src" / "a.py", tmp_path)
        assert not index_service.is_indexable(tmp_path / "node_modules" / "a.py", tmp_path)
        assert not index_service.is_indexable(tmp_path / "a.exe", tmp_path)
        assert not index_service.is_indexable("/elsewhere/a.py", tmp_path)

    def test_relative_path_keeps_symlink_location(self, make_file, tmp_path):
        target = make_file(tmp_path, "outside/real.py", "y = 1\n")
        root = tmp_path / "root"
        root.mkdir()
        os.symlink(target, root / "alias.py")

        assert relative_posix(root / "alias.py", root) == "alias.py"
        assert load_source_file(root / "alias.py", root).relative_path == "alias.py"

    def test_file_outside_root_is_rejected(self, make_file, tmp_path):
        outside = make_file(tmp_path, "elsewhere/a.py", "z = 1\n")
        (tmp_path / "root").mkdir()
        with pytest.raises(ValueError):
            load_source_file(outside, tmp_path / "root")

    def test_resolve_root_expands_relative_paths(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert resolve_root(".") == tmp_path.resolve()


class TestSingleFile:
    def test_index_file_and_remove_file(self, index_service, adapter, make_file, tmp_path):
        path = make_file(tmp_path, "pkg/mod.py", "def run():\n    return 1\n")

        assert index_service.index_file(path, tmp_path) == 2
        assert stored_ids(adapter) == {"pkg/mod.py:function:run", "pkg/mod.py:chunk:0"}

        make_file(tmp_path, "pkg/mod.py", "x = 1\n")
        index_service.index_file(path, tmp_path)
        assert stored_ids(adapter) == {"pkg/mod.py:chunk:0"}

        index_service.remove_file(path, tmp_path)
        assert adapter.count() == 0


class TestWatcher:
    def test_added_modified_deleted(self, index_service, adapter, make_file, tmp_path):
        path = make_file(tmp_path, "app.py", "def main():\n    pass\n")
        assert handle_changes(index_service, tmp_path, [(Change.added, str(path))]) == 1
        assert "app.py:function:main" in stored_ids(adapter)

        make_file(tmp_path, "app.py", "def other():\n    pass\n")
        handle_changes(index_service, tmp_path, [(Change.modified, str(path))])
        assert stored_ids(adapter) == {"app.py:function:other", "app.py:chunk:0"}

        path.unlink()
        handle_changes(index_service, tmp_path, [(Change.deleted, str(path))])
        assert adapter.count() == 0

    def test_ignores_non_indexable_paths(self, index_service, adapter, make_file, tmp_path):
        path = make_file(tmp_path, "node_modules/x.js", "let a = 1;\n")
        other = make_file(tmp_path, "notes.bin", "zz")
        changes = [(Change.added, str(path)), (Change.added, str(other))]
        assert handle_changes(index_service, tmp_path, changes) == 0
        assert adapter.count() == 0

    def test_one_failing_file_does_not_stop_the_batch(self, index_service, adapter, make_file, tmp_path):
        bad = tmp_path / "bad.py"
        bad.write_bytes(b"\xff\xfe\x80")
        good = make_file(tmp_path, "good.py", "y = 2\n")

        handled = handle_changes(index_service, tmp_path, [(Change.added, str(bad)), (Change.added, str(good))])

        assert handled == 1
        assert stored_ids(adapter) == {"good.py:chunk:0"}

    def test_last_event_per_path_wins(self, index_service, adapter, make_file, tmp_path):
        path = make_file(tmp_path, "a.py", "z = 3\n")
        changes = [(Change.deleted, str(path)), (Change.added, str(path))]
        assert handle_changes(index_service, tmp_path, changes) == 1
        assert stored_ids(adapter) == {"a.py:chunk:0"}

    def test_watch_returns_when_stopped(self, index_service, tmp_path):
        stop = threading.Event()
        stop.set()
        watch_codebase(index_service, tmp_path, stop_event=stop)
