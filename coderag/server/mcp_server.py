"""
MCP server exposing the codebase tools over stdio.

Usage:
    coderag-mcp
    python -m coderag.server.mcp_server
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from pydantic import Field

from coderag.config import public_settings, settings, setup_logging
from coderag.server.tools import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT, CodebaseTools
from coderag.vector_store import get_store_adapter

logger = logging.getLogger(__name__)


def create_mcp_server(tools: CodebaseTools, name: str = settings.mcp_server_name) -> FastMCP:
    """Register the four tools on a new FastMCP server backed by ``tools``."""
    server = FastMCP(name)

    @server.tool()
    def search_codebase(
        query: Annotated[str, Field(description="Search query to find relevant code or documentation")],
        limit: Annotated[
            int,
            Field(description=f"Maximum number of results to return (clamped to 1-{MAX_SEARCH_LIMIT})"),
        ] = DEFAULT_SEARCH_LIMIT,
    ) -> str:
        """Search through the indexed codebase for relevant code snippets and documentation."""
        return tools.call("search_codebase", {"query": query, "limit": limit}).text

    @server.tool()
    def index_codebase(
        path: Annotated[str, Field(description="Path to the codebase directory to index")],
        force: Annotated[bool, Field(description="Force reindexing even if already indexed")] = False,
    ) -> str:
        """Index a codebase directory for semantic search."""
        return tools.call("index_codebase", {"path": path, "force": force}).text

    @server.tool()
    def get_index_stats() -> str:
        """Get statistics about the current vector database index."""
        return tools.call("get_index_stats").text

    @server.tool()
    def clear_index(
        confirm: Annotated[bool, Field(description="Confirmation to clear the index")] = False,
    ) -> str:
        """Clear the entire vector database index."""
        return tools.call("clear_index", {"confirm": confirm}).text

    return server


def main() -> None:
    setup_logging()
    logger.info("Starting MCP RAG server")
    logger.info("Loaded settings: %s", public_settings())

    tools = CodebaseTools(get_store_adapter)
    tools.initialize()
    server = create_mcp_server(tools)
    server.run()


if __name__ == "__main__":
    main()
