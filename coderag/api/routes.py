from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Header, HTTPException, status

from coderag.config import settings
from coderag.models.schemas import ClearRequest, IndexRequest, SearchRequest, ToolResponse
from coderag.server.tools import TOOL_DEFINITIONS, CodebaseTools
from coderag.vector_store import get_store_adapter

router = APIRouter()
logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_tools() -> CodebaseTools:
    return CodebaseTools(get_store_adapter)


def _check_admin_token(x_admin_token: str | None) -> None:
    if not settings.admin_token:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin token is not configured",
        )
    if x_admin_token != settings.admin_token.get_secret_value():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


@router.get("/api/v1/tools", summary="List tool definitions")
def list_tools() -> List[Dict[str, Any]]:
    return TOOL_DEFINITIONS


@router.post("/api/v1/search", response_model=ToolResponse, summary="Search the indexed codebase")
def search(request: SearchRequest, tools: CodebaseTools = Depends(get_tools)) -> ToolResponse:
    query = request.query.strip()
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query must not be empty")

    logger.info("Search request", extra={"len": len(query), "limit": request.limit})
    return tools.call("search_codebase", {"query": query, "limit": request.limit})


@router.get("/api/v1/stats", response_model=ToolResponse, summary="Index statistics")
def stats(tools: CodebaseTools = Depends(get_tools)) -> ToolResponse:
    return tools.call("get_index_stats")


@router.post("/admin/index", response_model=ToolResponse, summary="Index a codebase directory")
def admin_index(
    request: IndexRequest,
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
    tools: CodebaseTools = Depends(get_tools),
) -> ToolResponse:
    _check_admin_token(x_admin_token)
    logger.info("Admin index requested", extra={"path": request.path, "force": request.force})
    return tools.call("index_codebase", {"path": request.path, "force": request.force})


@router.post("/admin/clear", response_model=ToolResponse, summary="Clear the index")
def admin_clear(
    request: ClearRequest,
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
    tools: CodebaseTools = Depends(get_tools),
) -> ToolResponse:
    _check_admin_token(x_admin_token)
    logger.info("Admin clear requested", extra={"confirm": request.confirm})
    return tools.call("clear_index", {"confirm": request.confirm})


__all__ = ["router", "get_tools"]
