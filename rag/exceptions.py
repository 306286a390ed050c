"""
Error taxonomy for the RAG core.

Every error raised on purpose by this package derives from RagError so
callers at the HTTP and CLI boundary can map them in one place.
"""


class RagError(Exception):
    """Base class for all RAG errors."""


class ValidationError(RagError):
    """Malformed upload, query or chunk batch. Not retryable."""


class NotFoundError(RagError):
    """Reference to an unknown document or conversation."""


class UpstreamUnavailableError(RagError):
    """The embedding or chat-completion endpoint exhausted its retry budget."""


class EmptyEmbeddingError(RagError):
    """The embedding endpoint answered successfully with a zero-length vector."""


class DimensionMismatchError(RagError):
    """Two embedding vectors of different length were compared or mixed."""


class PersistenceError(RagError):
    """A snapshot file could not be written."""


class UnsupportedTypeError(RagError):
    """Text extraction was asked for a content type it cannot handle."""


__all__ = [
    "RagError",
    "ValidationError",
    "NotFoundError",
    "UpstreamUnavailableError",
    "EmptyEmbeddingError",
    "DimensionMismatchError",
    "PersistenceError",
    "UnsupportedTypeError",
]
