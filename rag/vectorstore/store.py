"""
JSON-snapshot document store holding the corpus and its chunk embeddings.
"""

import asyncio
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from ..exceptions import DimensionMismatchError, NotFoundError, PersistenceError, ValidationError
from ..models.schemas import Chunk, Document

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_PATH = Path("data/documents.json")

_documents_adapter = TypeAdapter(list[Document])


def write_snapshot(path: Path, payload: bytes) -> None:
    """
    Atomically replace a snapshot file.

    The payload is written to a temporary file next to the target and
    moved into place, so readers of the file never see a partial write.

    Raises:
        PersistenceError: If the file cannot be written.
    """
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceError(f"Could not write snapshot {path}: {e}") from e


async def commit_snapshot(path: Path, payload: bytes, apply: Callable[[], None]) -> None:
    """
    Write a snapshot in a worker thread, then apply the in-memory change.

    A started write cannot be interrupted. If the awaiting task is
    cancelled mid-write, the write is still awaited and, when it
    succeeded, apply() runs before the cancellation propagates, so the
    in-memory state never diverges from the file.

    Raises:
        PersistenceError: If the file cannot be written.
    """
    write = asyncio.ensure_future(asyncio.to_thread(write_snapshot, path, payload))
    try:
        await asyncio.shield(write)
    except asyncio.CancelledError:
        await asyncio.wait({write})
        if write.exception() is None:
            apply()
        else:
            logger.error(f"Snapshot write failed during cancellation: {write.exception()}")
        raise
    apply()


class DocumentStore:
    """
    Corpus of documents and chunks persisted to a single JSON file.

    Mutations are serialized by one lock and build a new document list
    that replaces the current one only after the snapshot is on disk.
    Reads never take the lock; they see whichever commit finished last.
    """

    def __init__(self, snapshot_path: Optional[Path] = None):
        """
        Initialize the store and load the existing snapshot.

        Args:
            snapshot_path: Path of the JSON snapshot file.
        """
        self.snapshot_path = snapshot_path or DEFAULT_SNAPSHOT_PATH
        self._lock = asyncio.Lock()
        self._last_rebuild: Optional[datetime] = None
        self._documents: list[Document] = self._load()

    def _load(self) -> list[Document]:
        if not self.snapshot_path.exists():
            logger.info("No existing documents found")
            return []

        try:
            documents = _documents_adapter.validate_json(self.snapshot_path.read_bytes())
        except (OSError, ValueError, SchemaError) as e:
            logger.error(f"Error loading documents from {self.snapshot_path}: {e}")
            return []

        logger.info(f"Loaded {len(documents)} documents from storage")
        return documents

    async def _commit(self, documents: list[Document]) -> None:
        def apply() -> None:
            self._documents = documents

        payload = _documents_adapter.dump_json(documents, indent=2)
        await commit_snapshot(self.snapshot_path, payload, apply)
        logger.info(f"Saved {len(documents)} documents to storage")

    async def add_document(self, document: Document) -> None:
        """
        Append a new document and persist the corpus.

        Raises:
            ValidationError: If a document with the same ID already exists.
            DimensionMismatchError: If its embeddings disagree with the corpus dimension.
            PersistenceError: If the snapshot cannot be written.
        """
        async with self._lock:
            if any(d.id == document.id for d in self._documents):
                raise ValidationError(f"Document {document.id} already exists")
            self._check_dimensions(document.chunks, self._documents)

            await self._commit(self._documents + [document.model_copy(deep=True)])
            logger.info(f"Added document {document.id} ({document.filename})")

    async def upsert_chunks(self, document_id: str, chunks: list[Chunk]) -> None:
        """
        Replace a document's chunk list and persist the corpus.

        Args:
            document_id: ID of the owning document.
            chunks: Complete new chunk list for that document.

        Raises:
            ValidationError: If chunks is empty, an ID is blank or mismatched,
                or chunk indices are not dense from zero.
            NotFoundError: If no document has that ID.
            DimensionMismatchError: If embeddings disagree with the corpus dimension.
            PersistenceError: If the snapshot cannot be written.
        """
        if not chunks:
            raise ValidationError("Chunks must not be empty")
        if not document_id or not document_id.strip():
            raise ValidationError("Chunks must have a document_id")
        for chunk in chunks:
            if not chunk.document_id or not chunk.document_id.strip():
                raise ValidationError("Chunks must have a document_id")
            if chunk.document_id != document_id:
                raise ValidationError(
                    f"Chunk {chunk.id} belongs to {chunk.document_id}, not {document_id}"
                )

        ordered = sorted(chunks, key=lambda c: c.chunk_index)
        if [c.chunk_index for c in ordered] != list(range(len(ordered))):
            raise ValidationError("Chunk indices must be dense and start at 0")

        logger.info(f"Upserting {len(chunks)} chunks")

        async with self._lock:
            position = next(
                (i for i, d in enumerate(self._documents) if d.id == document_id), None
            )
            if position is None:
                raise NotFoundError(f"Document {document_id} not found")

            others = [d for d in self._documents if d.id != document_id]
            self._check_dimensions(ordered, others)

            updated = self._documents[position].model_copy(
                update={"chunks": [c.model_copy(deep=True) for c in ordered]}
            )
            documents = list(self._documents)
            documents[position] = updated
            await self._commit(documents)

    async def remove_document(self, document_id: str) -> None:
        """
        Delete a document and its chunks and persist the corpus.

        Raises:
            NotFoundError: If no document has that ID.
            PersistenceError: If the snapshot cannot be written.
        """
        async with self._lock:
            documents = [d for d in self._documents if d.id != document_id]
            if len(documents) == len(self._documents):
                raise NotFoundError(f"Document {document_id} not found")

            await self._commit(documents)
            logger.info(f"Removed document {document_id}")

    def check_dimensions(self, chunks: list[Chunk]) -> None:
        """
        Verify that chunk embeddings match the corpus dimension.

        Raises:
            DimensionMismatchError: If they disagree with each other or the corpus.
        """
        self._check_dimensions(chunks, self._documents)

    @staticmethod
    def _check_dimensions(chunks: list[Chunk], others: list[Document]) -> None:
        dimensions = {len(c.embedding) for c in chunks if c.embedding}
        corpus_dimension = _embedding_dimension(others)
        if corpus_dimension is not None:
            dimensions.add(corpus_dimension)
        if len(dimensions) > 1:
            raise DimensionMismatchError(
                f"Embedding dimensions disagree: {sorted(dimensions)}"
            )

    def all_chunks(self) -> list[Chunk]:
        """
        Flattened snapshot of every chunk in the corpus.

        The returned chunks belong to a committed state and must be
        treated as read-only.
        """
        documents = self._documents
        return [chunk for doc in documents for chunk in doc.chunks]

    def list_documents(self) -> list[Document]:
        """Return a copy of the corpus."""
        return [d.model_copy(deep=True) for d in self._documents]

    def get_document(self, document_id: str) -> Optional[Document]:
        """Return a copy of one document, or None if unknown."""
        for doc in self._documents:
            if doc.id == document_id:
                return doc.model_copy(deep=True)
        return None

    def document_names(self) -> dict[str, str]:
        """Map of document ID to filename."""
        return {d.id: d.filename for d in self._documents}

    async def rebuild(self) -> None:
        """
        Discard in-memory state and reload from the snapshot file.

        A corrupt or unreadable snapshot resets the corpus to empty.
        """
        async with self._lock:
            logger.info("Rebuilding index")
            self._documents = self._load()
            self._last_rebuild = datetime.now(timezone.utc)
            logger.info(f"Index rebuilt with {len(self._documents)} documents")

    def get_stats(self) -> dict:
        """
        Get statistics about the corpus.

        Returns:
            Dict with document and chunk counts.
        """
        documents = self._documents
        return {
            "total_documents": len(documents),
            "total_chunks": sum(len(d.chunks) for d in documents),
            "embedding_dimension": _embedding_dimension(documents),
            "last_rebuild": self._last_rebuild,
            "snapshot_path": str(self.snapshot_path),
        }


def _embedding_dimension(documents: list[Document]) -> Optional[int]:
    for doc in documents:
        for chunk in doc.chunks:
            if chunk.embedding:
                return len(chunk.embedding)
    return None
