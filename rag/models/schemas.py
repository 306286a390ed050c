"""
Pydantic models for the RAG core and its API.
"""

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


# Longest accepted chat question, in characters
MAX_QUERY_LENGTH = 5000


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Chunk(BaseModel):
    """A slice of a document's text with its embedding vector."""
    id: str = Field(default_factory=_new_id, description="Unique chunk ID")
    document_id: str = Field(..., description="ID of the owning document")
    content: str = Field(..., description="Chunk text")
    chunk_index: int = Field(..., ge=0, description="Zero-based position within the document")
    embedding: list[float] = Field(
        default_factory=list, description="Embedding vector (empty until embedded)"
    )


class Document(BaseModel):
    """An ingested file and the chunks it was split into."""
    id: str = Field(default_factory=_new_id, description="Unique document ID")
    filename: str = Field(..., description="Original file name")
    file_path: str = Field("", description="Where the uploaded file was stored")
    content_type: str = Field("", description="Declared content type")
    uploaded_at: datetime = Field(default_factory=_utcnow)
    chunks: list[Chunk] = Field(default_factory=list)


class Citation(BaseModel):
    """Snapshot of a retrieved chunk, kept for display."""
    filename: str = Field(..., description="Name of the cited document")
    chunk_index: int = Field(..., description="Index of the cited chunk")
    content: str = Field(..., description="Verbatim chunk text")


class Message(BaseModel):
    """A single conversation turn."""
    role: Literal["user", "assistant"] = Field(..., description="Message role")
    content: str = Field(..., description="Message content")
    timestamp: datetime = Field(default_factory=_utcnow)
    citations: Optional[list[Citation]] = Field(None, description="Sources for assistant messages")


class Conversation(BaseModel):
    """Append-only message history."""
    id: str = Field(default_factory=_new_id, description="Conversation ID")
    created_at: datetime = Field(default_factory=_utcnow)
    messages: list[Message] = Field(default_factory=list)


class ChatRequest(BaseModel):
    """Request to ask a question."""
    query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH, description="User's question")
    conversation_id: Optional[str] = Field(None, description="Conversation ID for context")

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Query is required")
        return value


class ChatResponse(BaseModel):
    """Answer to a chat request."""
    answer: str = Field(..., description="Assistant's answer")
    citations: list[Citation] = Field(default_factory=list)
    conversation_id: str = Field(..., description="Conversation ID")
    grounded: bool = Field(False, description="Whether retrieved context was used")


class UploadResponse(BaseModel):
    """Result of ingesting one file."""
    document_id: str
    filename: str
    chunks_created: int
    message: str = "Document uploaded and processed successfully"


class RebuildResponse(BaseModel):
    """Result of reloading the corpus snapshot."""
    message: str = "Index rebuilt successfully"
    document_count: int
    chunk_count: int


class KnowledgeStatus(BaseModel):
    """Status of the document corpus."""
    initialized: bool = Field(..., description="Whether any chunk is searchable")
    total_documents: int
    total_chunks: int
    embedding_dimension: Optional[int] = Field(None, description="Shared vector length")
    last_rebuild: Optional[datetime] = None
    embedding_model: str
