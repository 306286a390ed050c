"""Tests for the chat engine: grounding, history and degradation."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from conftest import FakeChatClient, FakeEmbeddingClient
from rag.chat.engine import ChatEngine
from rag.chat.prompts import (
    EMPTY_RESPONSE_ANSWER,
    FALLBACK_ANSWER,
    UNGROUNDED_SYSTEM_PROMPT,
)
from rag.exceptions import PersistenceError, UpstreamUnavailableError
from rag.history import ConversationStore
from rag.models.schemas import ChatRequest


class TestChatEngine:
    """Test the retrieval-augmented chat flow."""

    @pytest.mark.asyncio
    async def test_grounded_answer_cites_invoice_chunk(self, make_engine, invoice_embedder, invoice_file):
        engine = make_engine(embedding_client=invoice_embedder, chunk_size=20, chunk_overlap=0)

        upload = await engine.ingestion.ingest(invoice_file)
        assert upload.chunks_created == 3

        response = await engine.chat(ChatRequest(query="what is the invoice fee amount 250.00"))

        assert response.grounded is True
        top = response.citations[0]
        assert top.filename == "invoices.txt"
        assert top.chunk_index == 1
        assert top.content == "invoice fee 250.00"

        prompt = engine.llm_client.prompts[-1]
        assert "[Document: invoices.txt, Chunk #1]\ninvoice fee 250.00" in prompt
        assert prompt.rstrip().endswith("Answer:")

    @pytest.mark.asyncio
    async def test_conversation_continuity(self, make_engine):
        engine = make_engine()

        first = await engine.chat(ChatRequest(query="first question"))
        conversation_id = first.conversation_id
        await engine.chat(ChatRequest(query="second question", conversation_id=conversation_id))

        conversation = engine.conversation_store.get_conversation(conversation_id)
        assert [(m.role, m.content) for m in conversation.messages] == [
            ("user", "first question"),
            ("assistant", "answer 1"),
            ("user", "second question"),
            ("assistant", "answer 2"),
        ]

    @pytest.mark.asyncio
    async def test_history_window(self, make_engine):
        engine = make_engine()

        response = await engine.chat(ChatRequest(query="question one"))
        conversation_id = response.conversation_id
        for query in ("question two", "question three", "question four"):
            await engine.chat(ChatRequest(query=query, conversation_id=conversation_id))

        # Fourth call sees the five most recent of six earlier messages
        prompt = engine.llm_client.prompts[-1]
        assert "user: question one" not in prompt
        history = prompt.split("Previous conversation:\n", 1)[1].split("\n\n", 1)[0]
        assert history.splitlines() == [
            "assistant: answer 1",
            "user: question two",
            "assistant: answer 2",
            "user: question three",
            "assistant: answer 3",
        ]

    @pytest.mark.asyncio
    async def test_new_conversation_without_history(self, make_engine):
        engine = make_engine()
        response = await engine.chat(ChatRequest(query="hello there"))

        assert response.conversation_id
        assert "Previous conversation:" not in engine.llm_client.prompts[-1]

    @pytest.mark.asyncio
    async def test_embedding_failure_degrades(self, make_engine, invoice_embedder, invoice_file):
        engine = make_engine(embedding_client=invoice_embedder, chunk_size=20, chunk_overlap=0)
        await engine.ingestion.ingest(invoice_file)
        invoice_embedder.error = UpstreamUnavailableError("embedding request unavailable")

        response = await engine.chat(ChatRequest(query="what is the invoice fee amount 250.00"))

        assert response.citations == []
        assert response.grounded is False
        assert response.answer == "answer 1"
        assert engine.llm_client.prompts[-1].startswith(UNGROUNDED_SYSTEM_PROMPT)
        assert "Context:" not in engine.llm_client.prompts[-1]

    @pytest.mark.asyncio
    async def test_empty_corpus_is_ungrounded(self, make_engine):
        engine = make_engine()
        response = await engine.chat(ChatRequest(query="anything at all"))

        assert response.citations == []
        assert engine.llm_client.prompts[-1].startswith(UNGROUNDED_SYSTEM_PROMPT)

    @pytest.mark.asyncio
    async def test_llm_failure_uses_fallback(self, make_engine):
        llm = FakeChatClient(error=UpstreamUnavailableError("chat completion unavailable"))
        engine = make_engine(llm_client=llm)

        response = await engine.chat(ChatRequest(query="are you there"))

        assert response.answer == FALLBACK_ANSWER
        messages = engine.conversation_store.get_conversation(response.conversation_id).messages
        assert messages[-1].content == FALLBACK_ANSWER

    @pytest.mark.asyncio
    async def test_empty_llm_reply(self, make_engine):
        engine = make_engine(llm_client=FakeChatClient(reply=lambda n: None))
        response = await engine.chat(ChatRequest(query="say nothing"))
        assert response.answer == EMPTY_RESPONSE_ANSWER

    @pytest.mark.asyncio
    async def test_assistant_message_keeps_citations(self, make_engine, invoice_embedder, invoice_file):
        engine = make_engine(embedding_client=invoice_embedder, chunk_size=20, chunk_overlap=0)
        await engine.ingestion.ingest(invoice_file)

        response = await engine.chat(ChatRequest(query="what is the invoice fee amount 250.00"))

        messages = engine.conversation_store.get_conversation(response.conversation_id).messages
        assert messages[0].citations is None
        assert messages[1].citations == response.citations

    @pytest.mark.asyncio
    async def test_persistence_failure_propagates(self, make_config, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file")

        engine = ChatEngine(
            make_config(),
            conversation_store=ConversationStore(blocker / "conversations.json"),
            embedding_client=FakeEmbeddingClient(),
            llm_client=FakeChatClient(),
        )
        with pytest.raises(PersistenceError):
            await engine.chat(ChatRequest(query="will not be saved"))

    @pytest.mark.asyncio
    async def test_rebuild_and_status(self, make_engine, invoice_embedder, invoice_file):
        engine = make_engine(embedding_client=invoice_embedder, chunk_size=20, chunk_overlap=0)
        await engine.ingestion.ingest(invoice_file)

        result = await engine.rebuild_knowledge_base()
        assert result.document_count == 1
        assert result.chunk_count == 3

        status = engine.get_knowledge_status()
        assert status.initialized is True
        assert status.embedding_dimension == 2
        assert status.last_rebuild is not None
        assert status.embedding_model == "nomic-embed-text"
