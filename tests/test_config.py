"""Tests for configuration and prompt assembly."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from config import DEFAULT_PRIORITY_TERMS, Config
from rag.chat.context_builder import UNKNOWN_DOCUMENT, ContextBuilder
from rag.chat.prompts import GROUNDED_SYSTEM_PROMPT, UNGROUNDED_SYSTEM_PROMPT, PromptTemplates
from rag.models.schemas import Chunk, Citation, Message

ENV_VARS = [
    "LLM_CHAT_URL", "LLM_EMBEDDING_URL", "CHAT_MODEL", "EMBEDDING_MODEL",
    "CHUNK_SIZE", "CHUNK_OVERLAP", "TOP_K", "HISTORY_WINDOW", "PRIORITY_TERMS",
    "MAX_RETRIES", "BACKOFF_BASE", "HTTP_TIMEOUT", "DATA_DIRECTORY",
    "UPLOAD_DIRECTORY", "LOG_DIRECTORY", "LOG_LEVEL",
]


class TestConfig:
    """Test settings resolution."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        # setenv first so values loaded from .env files are undone afterwards
        for name in ENV_VARS:
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)

    def test_defaults(self, tmp_path):
        config = Config.from_env(tmp_path / "missing.env")
        assert config.llm_chat_url == "http://localhost:11434/api/chat"
        assert config.llm_embedding_url == "http://localhost:11434/api/embed"
        assert config.chat_model == "llama3.2"
        assert config.embedding_model == "nomic-embed-text"
        assert (config.chunk_size, config.chunk_overlap, config.top_k) == (1000, 200, 5)
        assert config.priority_terms == DEFAULT_PRIORITY_TERMS
        assert config.documents_path == Path("data") / "documents.json"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CHAT_MODEL", "mistral")
        monkeypatch.setenv("TOP_K", "8")
        monkeypatch.setenv("BACKOFF_BASE", "1.5")
        monkeypatch.setenv("PRIORITY_TERMS", "deadline, penalty ,")
        monkeypatch.setenv("DATA_DIRECTORY", str(tmp_path / "store"))
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = Config.from_env(tmp_path / "missing.env")
        assert config.chat_model == "mistral"
        assert config.top_k == 8
        assert config.backoff_base == 1.5
        assert config.priority_terms == ("deadline", "penalty")
        assert config.conversations_path == tmp_path / "store" / "conversations.json"
        assert config.log_level == "DEBUG"

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("EMBEDDING_MODEL=mxbai-embed-large\nCHUNK_SIZE=500\n")

        config = Config.from_env(env_file)
        assert config.embedding_model == "mxbai-embed-large"
        assert config.chunk_size == 500

    def test_unparsable_number_uses_default(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TOP_K", "many")
        assert Config.from_env(tmp_path / "missing.env").top_k == 5

    def test_invalid_chunking_rejected(self):
        with pytest.raises(ValueError):
            Config(chunk_size=100, chunk_overlap=100)
        with pytest.raises(ValueError):
            Config(top_k=0)


class TestContextBuilder:
    """Test citation and prompt assembly."""

    @pytest.fixture
    def builder(self):
        return ContextBuilder(PromptTemplates(priority_terms=("invoice", "fee")))

    def test_citations_follow_rank_order(self, builder):
        chunks = [
            Chunk(document_id="d2", content="second doc", chunk_index=4),
            Chunk(document_id="d1", content="first doc", chunk_index=0),
            Chunk(document_id="gone", content="orphan", chunk_index=2),
        ]
        citations = builder.build_citations(chunks, {"d1": "a.pdf", "d2": "b.md"})

        assert [(c.filename, c.chunk_index) for c in citations] == [
            ("b.md", 4),
            ("a.pdf", 0),
            (UNKNOWN_DOCUMENT, 2),
        ]

    def test_format_context(self, builder):
        context = builder.format_context([
            Citation(filename="a.pdf", chunk_index=0, content="alpha"),
            Citation(filename="b.md", chunk_index=3, content="beta"),
        ])
        assert context == "[Document: a.pdf, Chunk #0]\nalpha\n\n[Document: b.md, Chunk #3]\nbeta"

    def test_format_history(self, builder):
        history = builder.format_history([
            Message(role="user", content="hi"),
            Message(role="assistant", content="hello"),
        ])
        assert history == "user: hi\nassistant: hello"

    def test_grounded_prompt(self, builder):
        prompt = builder.build_prompt("What fee?", True, context="CTX", history="user: hi")

        assert prompt.startswith(GROUNDED_SYSTEM_PROMPT.format(priority_terms="invoice, fee"))
        assert prompt.index("Previous conversation:") < prompt.index("Context:\nCTX")
        assert prompt.endswith("Question: What fee?\n\nAnswer:")

    def test_ungrounded_prompt_omits_context(self, builder):
        prompt = builder.build_prompt("Hi?", False, context="CTX")

        assert prompt.startswith(UNGROUNDED_SYSTEM_PROMPT)
        assert "CTX" not in prompt
        assert "Previous conversation:" not in prompt
