"""
Watch mode: re-index files as they change on disk.

Uses watchfiles for OS-level change notifications. Each change re-processes
the whole file; there is no incremental diffing.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable, Set, Tuple

from watchfiles import Change, watch

from coderag.indexing.pipeline import IndexService, resolve_root

logger = logging.getLogger(__name__)


def handle_changes(service: IndexService, root: Path, changes: Iterable[Tuple[Change, str]]) -> int:
    """
    Apply one batch of filesystem changes. Returns the number of files handled.

    A failure on one file is logged and does not affect the others.
    """
    handled = 0
    # Last event per path wins inside a batch.
    latest = {}
    for change, path in changes:
        latest[path] = change

    for path, change in latest.items():
        if not service.is_indexable(path, root):
            continue
        try:
            if change == Change.deleted or not Path(path).exists():
                logger.info("File removed: %s", path)
                service.remove_file(path, root)
            else:
                logger.info("File %s: %s", change.name, path)
                service.index_file(path, root)
            handled += 1
        except Exception:
            logger.exception("Failed to index %s", path)
    return handled


def watch_codebase(
    service: IndexService,
    path: str | Path,
    stop_event: threading.Event | None = None,
) -> None:
    """Block and keep the index in sync with ``path`` until stopped or interrupted."""
    root = resolve_root(path)
    ignored: Set[str] = set(service.exclude_dirs)

    def should_watch(change: Change, changed_path: str) -> bool:
        try:
            parts = Path(changed_path).resolve().relative_to(root).parts
        except ValueError:
            return False
        return not any(part in ignored for part in parts)

    logger.info("Watching for changes", extra={"root": str(root)})
    for changes in watch(root, watch_filter=should_watch, stop_event=stop_event):
        handle_changes(service, root, changes)
    logger.info("Watcher stopped", extra={"root": str(root)})


__all__ = ["watch_codebase", "handle_changes"]
