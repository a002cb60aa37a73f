"""
HTTP front end: the MCP tools over plain JSON, for dashboards and scripts.

Usage:
    coderag-api
    uvicorn coderag.main:app --port 8080
"""

import logging

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coderag.api.routes import get_tools
from coderag.api.routes import router as api_router
from coderag.config import public_settings, settings, setup_logging
from coderag.server.tools import CodebaseTools

logger = setup_logging()
app = FastAPI(
    title="coderag",
    description="Semantic search over an indexed codebase",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

logger.info("HTTP API starting", extra={"collection": settings.collection_name})
logger.debug("Loaded settings: %s", public_settings())


@app.get("/health")
def health(tools: CodebaseTools = Depends(get_tools)) -> dict:
    # The store is connected on the first tool call, not here.
    return {"status": "ok", "vector_store": "ready" if tools.is_ready else "not initialized"}


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(api_router)


def run() -> None:
    uvicorn.run("coderag.main:app", host=settings.app_host, port=settings.app_port, log_level="info")


if __name__ == "__main__":
    run()
