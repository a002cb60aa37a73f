from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class LineRange(BaseModel):
    """1-based inclusive line span inside a file."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=1)
    end: int = Field(..., ge=1)

    @model_validator(mode="after")
    def _check_order(self) -> "LineRange":
        if self.end < self.start:
            raise ValueError(f"line range end {self.end} precedes start {self.start}")
        return self


class _BaseMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    filepath: str = Field(..., min_length=1)
    language: str | None = None
    lines: LineRange | None = None
    file_hash: str | None = None


class CodeMetadata(_BaseMetadata):
    type: Literal["code"] = "code"
    function: str | None = None
    class_name: str | None = Field(default=None, alias="class")


class DocMetadata(_BaseMetadata):
    type: Literal["doc"] = "doc"


class CommentMetadata(_BaseMetadata):
    type: Literal["comment"] = "comment"


DocumentMetadata = Annotated[
    Union[CodeMetadata, DocMetadata, CommentMetadata],
    Field(discriminator="type"),
]

metadata_adapter: TypeAdapter[DocumentMetadata] = TypeAdapter(DocumentMetadata)


class Document(BaseModel):
    """A retrieval unit: one chunk of a file plus its metadata."""

    id: str = Field(..., min_length=1)
    content: str
    metadata: DocumentMetadata


class SearchResult(BaseModel):
    id: str
    content: str
    metadata: DocumentMetadata
    score: float = Field(..., ge=0.0, le=1.0)


# HTTP API
class SearchRequest(BaseModel):
    """Semantic search over the indexed codebase."""

    query: str = Field(..., min_length=1, description="Search query to find relevant code or documentation")
    limit: int = Field(default=5, ge=1, le=20, description="Maximum number of results to return")


class IndexRequest(BaseModel):
    """Index a codebase directory."""

    path: str = Field(..., min_length=1, description="Path to the codebase directory to index")
    force: bool = Field(default=False, description="Force reindexing even if already indexed")


class ClearRequest(BaseModel):
    confirm: bool = Field(default=False, description="Confirmation to clear the index")


class ToolResponse(BaseModel):
    """Text payload returned by every tool, over MCP and HTTP alike."""

    tool: str
    text: str
    is_error: bool = False


def metadata_to_dict(metadata: DocumentMetadata) -> Dict[str, Any]:
    return metadata.model_dump(by_alias=True, exclude_none=True)


__all__ = [
    "LineRange",
    "CodeMetadata",
    "DocMetadata",
    "CommentMetadata",
    "DocumentMetadata",
    "metadata_adapter",
    "Document",
    "SearchResult",
    "SearchRequest",
    "IndexRequest",
    "ClearRequest",
    "ToolResponse",
    "metadata_to_dict",
]
