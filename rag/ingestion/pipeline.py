"""
Ingestion pipeline: extract, chunk, embed and store an uploaded file.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from ..exceptions import ValidationError
from ..models.schemas import Document, UploadResponse
from .chunker import chunk_text
from .extractors import detect_content_type, extract_text

logger = logging.getLogger(__name__)


class IngestionService:
    """Turns files into searchable documents in the document store."""

    def __init__(self, config, document_store, embedding_client):
        """
        Initialize the ingestion service.

        Args:
            config: Application configuration (chunk size and overlap).
            document_store: DocumentStore receiving the document.
            embedding_client: EmbeddingClient used for every chunk.
        """
        self.config = config
        self.document_store = document_store
        self.embedding_client = embedding_client

    async def ingest(
        self,
        file_path: Path,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> UploadResponse:
        """
        Process a file and add it to the corpus.

        Every chunk is embedded and checked against the corpus dimension
        before anything is stored, and a document whose chunks cannot be
        stored is removed again, so a failed upload leaves no trace in the
        corpus.

        Args:
            file_path: Where the file is stored.
            filename: Original file name (defaults to the path's name).
            content_type: Declared content type, recorded on the document.

        Returns:
            Upload summary.

        Raises:
            UnsupportedTypeError: If the file type is not supported.
            ValidationError: If no text could be extracted.
            UpstreamUnavailableError: If embedding fails after retries.
            DimensionMismatchError: If the embeddings disagree with the corpus dimension.
            PersistenceError: If the corpus cannot be saved.
        """
        filename = filename or file_path.name
        logger.info(f"Processing document: {filename}")

        kind = detect_content_type(filename)
        try:
            text = await asyncio.to_thread(extract_text, file_path, kind)
        except Exception as e:
            logger.error(f"Error extracting text from {filename}: {e}")
            raise

        document = Document(
            filename=filename,
            file_path=str(file_path),
            content_type=content_type or kind,
        )

        chunks = chunk_text(
            text,
            document.id,
            chunk_size=self.config.chunk_size,
            chunk_overlap=self.config.chunk_overlap,
        )
        if not chunks:
            raise ValidationError(f"No text could be extracted from {filename}")
        logger.info(f"Created {len(chunks)} chunks for document {filename}")

        logger.info(f"Generating embeddings for {len(chunks)} chunks")
        embeddings = await self.embedding_client.get_embeddings([c.content for c in chunks])
        chunks = [
            chunk.model_copy(update={"embedding": embedding})
            for chunk, embedding in zip(chunks, embeddings)
        ]

        self.document_store.check_dimensions(chunks)

        await self.document_store.add_document(document)
        try:
            await self.document_store.upsert_chunks(document.id, chunks)
        except BaseException:
            logger.error(f"Storing chunks for {filename} failed, removing the document")
            await self.document_store.remove_document(document.id)
            raise

        return UploadResponse(
            document_id=document.id,
            filename=document.filename,
            chunks_created=len(chunks),
        )
