"""
The four codebase tools exposed to coding assistants.

Every handler returns plain text. Exceptions never escape ``call``: they are
logged and turned into an ``Error: ...`` message so the protocol layer only
ever sees a successful text response.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping

from coderag.config import settings
from coderag.indexing.pipeline import IndexService
from coderag.models.schemas import SearchResult, ToolResponse
from coderag.vector_store.adapter import StoreAdapter

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 5
MAX_SEARCH_LIMIT = 20
NO_RESULTS_MESSAGE = (
    "No results found for your query. Try different search terms or make sure the codebase is indexed."
)
CLEAR_CANCELLED_MESSAGE = "Index clearing cancelled. Set confirm=true to proceed."
CLEARED_MESSAGE = "Vector database index cleared successfully."

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": "search_codebase",
        "description": "Search through the indexed codebase for relevant code snippets and documentation",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query to find relevant code or documentation",
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of results to return",
                    "default": DEFAULT_SEARCH_LIMIT,
                    "minimum": 1,
                    "maximum": MAX_SEARCH_LIMIT,
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "index_codebase",
        "description": "Index a codebase directory for semantic search",
        "inputSchema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path to the codebase directory to index"},
                "force": {
                    "type": "boolean",
                    "description": "Force reindexing even if already indexed",
                    "default": False,
                },
            },
            "required": ["path"],
        },
    },
    {
        "name": "get_index_stats",
        "description": "Get statistics about the current vector database index",
        "inputSchema": {"type": "object", "properties": {}, "additionalProperties": False},
    },
    {
        "name": "clear_index",
        "description": "Clear the entire vector database index",
        "inputSchema": {
            "type": "object",
            "properties": {
                "confirm": {
                    "type": "boolean",
                    "description": "Confirmation to clear the index",
                    "default": False,
                }
            },
            "required": ["confirm"],
        },
    },
]


def clamp_limit(limit: Any) -> int:
    if limit is None:
        return DEFAULT_SEARCH_LIMIT
    try:
        value = int(limit)
    except (TypeError, ValueError) as exc:
        raise ValueError("Limit parameter must be a number") from exc
    return max(1, min(value, MAX_SEARCH_LIMIT))


def format_result(index: int, result: SearchResult) -> str:
    metadata = result.metadata
    lines = f":{metadata.lines.start}-{metadata.lines.end}" if metadata.lines else ""
    language = f" ({metadata.language})" if metadata.language else ""

    parts = [
        f"## Result {index} (Score: {result.score:.3f})",
        f"**File:** {metadata.filepath}{lines}",
        f"**Type:** {metadata.type}{language}",
    ]
    function = getattr(metadata, "function", None)
    class_name = getattr(metadata, "class_name", None)
    if function:
        parts.append(f"**Function:** {function}")
    if class_name:
        parts.append(f"**Class:** {class_name}")
    parts.append("")
    parts.append(f"```{metadata.language or 'text'}\n{result.content}\n```")
    return "\n".join(parts)


def format_results(results: List[SearchResult]) -> str:
    body = "\n\n".join(format_result(i, r) for i, r in enumerate(results, start=1))
    return f"Found {len(results)} relevant results:\n\n{body}"


class CodebaseTools:
    """
    Tool handlers over one StoreAdapter.

    The adapter is created on first use through ``adapter_factory`` so a server
    can start before the vector store and embedding service are reachable.
    """

    def __init__(
        self,
        adapter_factory: Callable[[], StoreAdapter],
        index_service_factory: Callable[[StoreAdapter], IndexService] | None = None,
        logger_: logging.Logger | None = None,
    ) -> None:
        self._adapter_factory = adapter_factory
        self._index_service_factory = index_service_factory or (lambda adapter: IndexService(adapter))
        self._adapter: StoreAdapter | None = None
        self._index_service: IndexService | None = None
        self.logger = logger_ or logging.getLogger(__name__)

    @property
    def is_ready(self) -> bool:
        return self._adapter is not None

    def initialize(self) -> StoreAdapter:
        if self._adapter is None:
            self.logger.info("Initializing vector store")
            adapter = self._adapter_factory()
            self._index_service = self._index_service_factory(adapter)
            self._adapter = adapter
            self.logger.info("Vector store ready", extra={"collection": adapter.collection_name})
        return self._adapter

    @property
    def adapter(self) -> StoreAdapter:
        return self.initialize()

    @property
    def index_service(self) -> IndexService:
        self.initialize()
        assert self._index_service is not None
        return self._index_service

    # --- Tools ---
    def search_codebase(self, query: str, limit: int | None = DEFAULT_SEARCH_LIMIT) -> str:
        if not query or not isinstance(query, str) or not query.strip():
            raise ValueError("Query parameter is required and must be a string")

        results = self.adapter.query(query, clamp_limit(limit))
        if not results:
            return NO_RESULTS_MESSAGE
        return format_results(results)

    def index_codebase(self, path: str, force: bool = False) -> str:
        if not path or not isinstance(path, str):
            raise ValueError("Path parameter is required and must be a string")

        self.logger.info("Starting indexing", extra={"path": path, "force": force})
        summary = self.index_service.index_codebase(path, force=bool(force))

        if summary.documents_indexed == 0:
            if summary.files_skipped:
                return (
                    f"Index is up to date: {summary.files_skipped} unchanged files skipped in {summary.root}\n"
                    f"Total documents in index: {summary.total_documents}"
                )
            return f"No documents found to index in: {summary.root}"

        return (
            f"Successfully indexed {summary.documents_indexed} documents from {summary.root}\n"
            f"Processing time: {summary.elapsed_sec:.2f}s\n"
            f"Total documents in index: {summary.total_documents}"
        )

    def get_index_stats(self) -> str:
        # Status as of the call: the first call connects the store itself.
        status = "Ready" if self.is_ready else "Initializing"
        adapter = self.adapter
        count = adapter.count()
        cache = adapter.cache.stats()
        return (
            "Vector Database Statistics:\n"
            f"- Total documents: {count}\n"
            f"- Collection: {adapter.collection_name}\n"
            f"- Status: {status}\n"
            f"- Storage: {getattr(adapter.store, 'persist_directory', settings.vector_store_path)}\n"
            f"- Embedding cache: {cache['size']} entries, hit rate {cache['hit_rate']}"
        )

    def clear_index(self, confirm: bool = False) -> str:
        if not confirm:
            return CLEAR_CANCELLED_MESSAGE

        adapter = self.adapter
        adapter.delete_all()
        adapter.cache.clear()
        return CLEARED_MESSAGE

    # --- Dispatch ---
    def call(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResponse:
        args = dict(arguments or {})
        handlers: Dict[str, Callable[[], str]] = {
            "search_codebase": lambda: self.search_codebase(args.get("query"), args.get("limit", DEFAULT_SEARCH_LIMIT)),
            "index_codebase": lambda: self.index_codebase(args.get("path"), bool(args.get("force", False))),
            "get_index_stats": self.get_index_stats,
            "clear_index": lambda: self.clear_index(bool(args.get("confirm", False))),
        }

        try:
            handler = handlers.get(name)
            if handler is None:
                raise ValueError(f"Unknown tool: {name}")
            return ToolResponse(tool=name, text=handler())
        except Exception as exc:
            self.logger.exception("Tool call failed", extra={"tool": name})
            return ToolResponse(tool=name, text=f"Error: {exc}", is_error=True)


__all__ = [
    "CodebaseTools",
    "TOOL_DEFINITIONS",
    "NO_RESULTS_MESSAGE",
    "CLEAR_CANCELLED_MESSAGE",
    "CLEARED_MESSAGE",
    "clamp_limit",
    "format_results",
]
