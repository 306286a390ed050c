"""
Prompt assembly from retrieved chunks and conversation history.
"""

import logging
from typing import Optional

from ..models.schemas import Chunk, Citation, Message
from .prompts import (
    CHUNK_HEADER_TEMPLATE,
    CONTEXT_TEMPLATE,
    HISTORY_TEMPLATE,
    QUESTION_TEMPLATE,
    PromptTemplates,
)

logger = logging.getLogger(__name__)

UNKNOWN_DOCUMENT = "Unknown"


class ContextBuilder:
    """Builds citations, the context block and the final prompt."""

    def __init__(self, templates: Optional[PromptTemplates] = None):
        """
        Initialize the context builder.

        Args:
            templates: Prompt templates. Uses the defaults if not provided.
        """
        self.templates = templates or PromptTemplates()

    def build_citations(
        self,
        chunks: list[Chunk],
        document_names: dict[str, str],
    ) -> list[Citation]:
        """
        Convert retrieved chunks to citations.

        Args:
            chunks: Retrieved chunks, in rank order.
            document_names: Map of document ID to filename.

        Returns:
            One citation per chunk, in the same order.
        """
        citations = []
        for chunk in chunks:
            filename = document_names.get(chunk.document_id)
            if filename is None:
                logger.warning(f"Chunk {chunk.id} references unknown document {chunk.document_id}")
                filename = UNKNOWN_DOCUMENT
            citations.append(Citation(
                filename=filename,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
            ))
        return citations

    def format_context(self, citations: list[Citation]) -> str:
        """Format cited chunks as a context block separated by blank lines."""
        parts = []
        for citation in citations:
            header = CHUNK_HEADER_TEMPLATE.format(
                filename=citation.filename,
                chunk_index=citation.chunk_index,
            )
            parts.append(f"{header}\n{citation.content}")
        return "\n\n".join(parts)

    def format_history(self, messages: list[Message]) -> str:
        """Format messages as 'role: content' lines, oldest first."""
        return "\n".join(f"{m.role}: {m.content}" for m in messages)

    def build_prompt(
        self,
        question: str,
        grounded: bool,
        context: str = "",
        history: str = "",
    ) -> str:
        """
        Build the full prompt for the chat-completion call.

        Args:
            question: User's question.
            grounded: Whether retrieved context is available.
            context: Formatted context block (used only when grounded).
            history: Formatted conversation history.

        Returns:
            Prompt text ending with an answer cue.
        """
        parts = [self.templates.system_prompt(grounded)]

        if history:
            parts.append(HISTORY_TEMPLATE.format(history=history))

        if grounded and context:
            parts.append(CONTEXT_TEMPLATE.format(context=context))

        parts.append(QUESTION_TEMPLATE.format(question=question))
        return "\n\n".join(parts)
