"""
Document store, embedding client and hybrid retrieval.
"""

# Imports are done lazily to avoid circular dependencies
# Use: from rag.vectorstore.store import DocumentStore

__all__ = ["DocumentStore", "EmbeddingClient", "Retriever", "ScoringWeights"]
