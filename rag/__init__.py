"""
Retrieval-augmented question answering over a local document corpus.

Documents are chunked, embedded and stored in a JSON snapshot; chat
requests are answered by ranking chunks with a hybrid semantic and
keyword score and grounding an external language model on them.
"""

# Imports are done lazily to avoid circular dependencies
# Use: from rag.chat.engine import ChatEngine

__all__ = ["ChatEngine", "DocumentStore", "ConversationStore", "Retriever"]
