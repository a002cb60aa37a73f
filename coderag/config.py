"""
Application configuration loaded from environment variables.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EXCLUDE_DIRS = ["node_modules", "dist", "build", ".git", "coverage"]
DEFAULT_EXCLUDE_GLOBS = ["*.min.js", "*.bundle.js"]


class Settings(BaseSettings):
    """Centralised application settings."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: SecretStr | None = Field(default=None, alias="OPENAI_API_KEY")
    embedding_model_name: str = Field(default="text-embedding-3-small", alias="EMBEDDING_MODEL_NAME")
    embedding_base_url: str | None = Field(default=None, alias="EMBEDDING_BASE_URL")
    embedding_batch_size: int = Field(default=64, gt=0, alias="EMBEDDING_BATCH_SIZE")
    embedding_cache_max_size: int = Field(default=0, ge=0, alias="EMBEDDING_CACHE_MAX_SIZE")

    vector_store_backend: str = Field(default="chroma", alias="VECTOR_STORE_BACKEND")
    vector_store_path: str = Field(default="./data/vector_store", alias="VECTOR_STORE_PATH")
    chroma_host: str = Field(default="localhost", alias="CHROMA_HOST")
    chroma_port: int = Field(default=8000, alias="CHROMA_PORT")
    collection_name: str = Field(default="codebase", alias="COLLECTION_NAME")

    max_chunk_size: int = Field(default=1000, gt=0, alias="MAX_CHUNK_SIZE")
    chunk_overlap: int = Field(default=100, ge=0, alias="CHUNK_OVERLAP")
    upsert_batch_size: int = Field(default=64, gt=0, alias="UPSERT_BATCH_SIZE")

    exclude_dirs: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS), alias="EXCLUDE_DIRS")
    exclude_globs: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_GLOBS), alias="EXCLUDE_GLOBS")

    admin_token: SecretStr | None = Field(default=None, alias="ADMIN_TOKEN")

    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8080, alias="APP_PORT")
    mcp_server_name: str = Field(default="rag-context", alias="MCP_SERVER_NAME")


settings = Settings()


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure base logging for the app.

    Handlers write to stderr so stdout stays free for the MCP stdio transport.
    """
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    )
    return logging.getLogger("coderag")


def public_settings() -> Dict[str, Any]:
    """
    Return settings without secrets for safe logging/inspection.
    """
    return settings.model_dump(
        exclude={"openai_api_key", "admin_token"},
        exclude_none=True,
    )


__all__ = ["Settings", "settings", "setup_logging", "public_settings"]
