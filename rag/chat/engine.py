"""
Chat engine orchestrating retrieval-augmented responses.
"""

import logging
import uuid
from typing import Optional

from config import Config, get_config

from ..history import ConversationStore
from ..ingestion.pipeline import IngestionService
from ..models.schemas import (
    ChatRequest,
    ChatResponse,
    Chunk,
    Citation,
    KnowledgeStatus,
    RebuildResponse,
)
from ..retry import RetryPolicy
from ..vectorstore.embeddings import EmbeddingClient
from ..vectorstore.retriever import Retriever
from ..vectorstore.store import DocumentStore
from .context_builder import ContextBuilder
from .llm import ChatCompletionClient
from .prompts import EMPTY_RESPONSE_ANSWER, FALLBACK_ANSWER, PromptTemplates

logger = logging.getLogger(__name__)


class ChatEngine:
    """Main chat engine orchestrating RAG responses."""

    def __init__(
        self,
        config: Optional[Config] = None,
        document_store: Optional[DocumentStore] = None,
        conversation_store: Optional[ConversationStore] = None,
        embedding_client: Optional[EmbeddingClient] = None,
        llm_client: Optional[ChatCompletionClient] = None,
    ):
        """
        Initialize the chat engine.

        Components that are not passed in are created lazily from config.

        Args:
            config: Application configuration (uses the global default if not provided).
            document_store: Corpus store.
            conversation_store: Conversation history store.
            embedding_client: Client for the embedding endpoint.
            llm_client: Client for the chat-completion endpoint.
        """
        self.config = config or get_config()

        self._document_store = document_store
        self._conversation_store = conversation_store
        self._embedding_client = embedding_client
        self._llm_client = llm_client
        self._retriever: Optional[Retriever] = None
        self._context_builder: Optional[ContextBuilder] = None
        self._ingestion: Optional[IngestionService] = None

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.config.max_retries,
            backoff_base=self.config.backoff_base,
        )

    @property
    def document_store(self) -> DocumentStore:
        """Get the document store instance."""
        if self._document_store is None:
            self._document_store = DocumentStore(self.config.documents_path)
        return self._document_store

    @property
    def conversation_store(self) -> ConversationStore:
        """Get the conversation store instance."""
        if self._conversation_store is None:
            self._conversation_store = ConversationStore(self.config.conversations_path)
        return self._conversation_store

    @property
    def embedding_client(self) -> EmbeddingClient:
        """Get the embedding client instance."""
        if self._embedding_client is None:
            self._embedding_client = EmbeddingClient(
                url=self.config.llm_embedding_url,
                model_name=self.config.embedding_model,
                retry_policy=self.retry_policy,
                timeout=self.config.http_timeout,
            )
        return self._embedding_client

    @property
    def llm_client(self) -> ChatCompletionClient:
        """Get the chat-completion client instance."""
        if self._llm_client is None:
            self._llm_client = ChatCompletionClient(
                url=self.config.llm_chat_url,
                model_name=self.config.chat_model,
                retry_policy=self.retry_policy,
                timeout=self.config.http_timeout,
            )
        return self._llm_client

    @property
    def retriever(self) -> Retriever:
        """Get the retriever instance."""
        if self._retriever is None:
            self._retriever = Retriever(self.document_store, self.config.scoring)
        return self._retriever

    @property
    def context_builder(self) -> ContextBuilder:
        """Get the context builder instance."""
        if self._context_builder is None:
            templates = PromptTemplates(priority_terms=self.config.priority_terms)
            self._context_builder = ContextBuilder(templates)
        return self._context_builder

    @property
    def ingestion(self) -> IngestionService:
        """Get the ingestion service sharing this engine's store and embedder."""
        if self._ingestion is None:
            self._ingestion = IngestionService(
                self.config,
                self.document_store,
                self.embedding_client,
            )
        return self._ingestion

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """
        Process a chat request and return a response.

        Embedding and retrieval failures fall back to an ungrounded answer
        and an unreachable LLM yields a fixed apology; only failures to
        record the turn are raised.

        Args:
            request: The chat request.

        Returns:
            Chat response with answer, citations and conversation ID.

        Raises:
            PersistenceError: If the conversation turn cannot be saved.
        """
        query = request.query
        logger.info(f"Processing chat request: {query[:100]}")

        grounded = False
        citations: list[Citation] = []
        context = ""

        query_embedding = await self._embed_query(query)
        if query_embedding is not None:
            chunks = self._retrieve(query_embedding, query)
            if chunks:
                grounded = True
                citations = self.context_builder.build_citations(
                    chunks, self.document_store.document_names()
                )
                context = self.context_builder.format_context(citations)

        history = self._recall_history(request.conversation_id)

        prompt = self.context_builder.build_prompt(
            question=query,
            grounded=grounded,
            context=context,
            history=history,
        )

        answer = await self._generate(prompt)

        conversation_id = request.conversation_id or str(uuid.uuid4())

        await self.conversation_store.append_message(conversation_id, "user", query)
        await self.conversation_store.append_message(
            conversation_id, "assistant", answer, citations
        )

        return ChatResponse(
            answer=answer,
            citations=citations,
            conversation_id=conversation_id,
            grounded=grounded,
        )

    async def _embed_query(self, query: str) -> Optional[list[float]]:
        try:
            return await self.embedding_client.get_embedding(query)
        except Exception as e:
            logger.warning(f"Query embedding failed, answering without documents: {e}")
            return None

    def _retrieve(self, query_embedding: list[float], query: str) -> list[Chunk]:
        try:
            return self.retriever.hybrid_search(query_embedding, query, self.config.top_k)
        except Exception as e:
            logger.error(f"Retrieval failed, answering without documents: {e}")
            return []

    def _recall_history(self, conversation_id: Optional[str]) -> str:
        if not conversation_id:
            return ""
        messages = self.conversation_store.get_recent_messages(
            conversation_id, limit=self.config.history_window
        )
        return self.context_builder.format_history(messages)

    async def _generate(self, prompt: str) -> str:
        try:
            answer = await self.llm_client.complete(prompt)
        except Exception as e:
            logger.error(f"Error calling chat model, using fallback answer: {e}")
            return FALLBACK_ANSWER

        return answer or EMPTY_RESPONSE_ANSWER

    async def rebuild_knowledge_base(self) -> RebuildResponse:
        """
        Reload the corpus from its snapshot file.

        Returns:
            Document and chunk counts after the reload.
        """
        await self.document_store.rebuild()
        stats = self.document_store.get_stats()
        return RebuildResponse(
            document_count=stats["total_documents"],
            chunk_count=stats["total_chunks"],
        )

    def get_knowledge_status(self) -> KnowledgeStatus:
        """
        Get the current status of the knowledge base.

        Returns:
            Knowledge base status.
        """
        stats = self.document_store.get_stats()

        return KnowledgeStatus(
            initialized=stats["total_chunks"] > 0,
            total_documents=stats["total_documents"],
            total_chunks=stats["total_chunks"],
            embedding_dimension=stats["embedding_dimension"],
            last_rebuild=stats["last_rebuild"],
            embedding_model=self.config.embedding_model,
        )

    async def aclose(self) -> None:
        """Close the HTTP clients this engine opened."""
        if self._embedding_client is not None:
            await self._embedding_client.aclose()
        if self._llm_client is not None:
            await self._llm_client.aclose()
