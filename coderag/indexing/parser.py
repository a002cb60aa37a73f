"""
Source tree utilities: language detection, file discovery and loading.
"""

from __future__ import annotations

import fnmatch
import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List

from coderag.config import settings

logger = logging.getLogger(__name__)

LANGUAGE_EXTENSIONS: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".c": "c",
    ".h": "c",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".kt": "kotlin",
    ".swift": "swift",
    ".md": "markdown",
    ".txt": "text",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".xml": "xml",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".sass": "sass",
    ".sql": "sql",
}

# Languages that skip structural extraction and are chunked as prose.
DOC_LANGUAGES = frozenset({"markdown", "text"})


@dataclass
class SourceFile:
    path: Path
    relative_path: str
    language: str
    content: str

    @property
    def content_hash(self) -> str:
        return content_hash(self.content)


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def detect_language(path: str | Path) -> str | None:
    return LANGUAGE_EXTENSIONS.get(Path(path).suffix.lower())


def relative_posix(path: str | Path, root: str | Path) -> str:
    """
    Forward-slash path of ``path`` inside ``root``.

    Symlinks are not followed, so a link inside the tree keeps its own location
    even when its target lives elsewhere. Raises ValueError outside ``root``.
    """
    root_path = Path(root).resolve()
    try:
        return Path(os.path.abspath(path)).relative_to(root_path).as_posix()
    except ValueError:
        return Path(path).resolve().relative_to(root_path).as_posix()


def is_excluded(
    relative_path: str,
    exclude_dirs: Iterable[str] = (),
    exclude_globs: Iterable[str] = (),
) -> bool:
    parts = relative_path.split("/")
    dirs = set(exclude_dirs)
    if any(part in dirs for part in parts[:-1]):
        return True
    name = parts[-1]
    return any(fnmatch.fnmatch(name, pattern) for pattern in exclude_globs)


def is_indexable(
    relative_path: str,
    exclude_dirs: Iterable[str] = (),
    exclude_globs: Iterable[str] = (),
) -> bool:
    return detect_language(relative_path) is not None and not is_excluded(
        relative_path, exclude_dirs, exclude_globs
    )


def find_source_files(
    root: str | Path,
    exclude_dirs: Iterable[str] | None = None,
    exclude_globs: Iterable[str] | None = None,
) -> List[Path]:
    """
    Return indexable files under root, sorted for a stable processing order.
    """
    base = Path(root).resolve()
    dirs = list(settings.exclude_dirs if exclude_dirs is None else exclude_dirs)
    globs = list(settings.exclude_globs if exclude_globs is None else exclude_globs)

    files: List[Path] = []
    for path in sorted(base.rglob("*")):
        if not path.is_file():
            continue
        if is_indexable(path.relative_to(base).as_posix(), dirs, globs):
            files.append(path)
    return files


def load_source_file(path: str | Path, root: str | Path) -> SourceFile:
    """
    Read a file as UTF-8. Raises OSError / UnicodeDecodeError for unreadable files
    and ValueError when ``path`` is not inside ``root``.
    """
    file_path = Path(os.path.abspath(path))
    language = detect_language(file_path) or "text"
    text = file_path.read_text(encoding="utf-8")
    return SourceFile(
        path=file_path,
        relative_path=relative_posix(file_path, root),
        language=language,
        content=text,
    )


__all__ = [
    "LANGUAGE_EXTENSIONS",
    "DOC_LANGUAGES",
    "SourceFile",
    "content_hash",
    "detect_language",
    "relative_posix",
    "is_excluded",
    "is_indexable",
    "find_source_files",
    "load_source_file",
]
