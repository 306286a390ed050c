"""
Text extraction, chunking and the ingestion pipeline.
"""

# Imports are done lazily to avoid circular dependencies
# Use: from rag.ingestion.pipeline import IngestionService

__all__ = ["IngestionService", "extract_text", "chunk_text"]
