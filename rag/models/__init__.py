"""
Pydantic models for the corpus, conversations and the chat API.
"""

# Imports are done lazily to avoid circular dependencies
# Use: from rag.models.schemas import Document

__all__ = [
    "Document",
    "Chunk",
    "Citation",
    "Message",
    "Conversation",
    "ChatRequest",
    "ChatResponse",
    "UploadResponse",
    "RebuildResponse",
    "KnowledgeStatus",
]
