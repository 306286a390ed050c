"""
Pytest configuration for the LocalRAG test suite.

Provides in-memory stand-ins for the embedding and chat-completion
endpoints and a factory for engines backed by temporary snapshot files.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from config import Config
from rag.chat.engine import ChatEngine


class FakeEmbeddingClient:
    """Returns the vector of the first marker found in the text."""

    def __init__(self, vectors=None, default=(1.0, 0.0), error=None):
        self.vectors = vectors or {}
        self.default = list(default)
        self.error = error
        self.calls = []

    async def get_embedding(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        for marker, vector in self.vectors.items():
            if marker in text:
                return list(vector)
        return list(self.default)

    async def get_embeddings(self, texts):
        return [await self.get_embedding(t) for t in texts]

    async def aclose(self):
        pass


class FakeChatClient:
    """Records prompts and replies with 'answer N' unless told otherwise."""

    def __init__(self, reply=None, error=None):
        self.reply = reply or (lambda n: f"answer {n}")
        self.error = error
        self.prompts = []

    async def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply(len(self.prompts))

    async def aclose(self):
        pass


@pytest.fixture
def fake_embedder():
    return FakeEmbeddingClient()


@pytest.fixture
def fake_llm():
    return FakeChatClient()


@pytest.fixture
def make_config(tmp_path):
    """Factory for configs whose files live under tmp_path."""
    def _make(**overrides):
        settings = {
            "data_directory": tmp_path / "data",
            "upload_directory": tmp_path / "uploads",
            "log_directory": tmp_path / "logs",
            "backoff_base": 0,
        }
        settings.update(overrides)
        return Config(**settings)

    return _make


@pytest.fixture
def make_engine(make_config, fake_embedder, fake_llm):
    """Factory for chat engines wired to the fake clients."""
    def _make(embedding_client=None, llm_client=None, **config_overrides):
        return ChatEngine(
            make_config(**config_overrides),
            embedding_client=embedding_client or fake_embedder,
            llm_client=llm_client or fake_llm,
        )

    return _make


@pytest.fixture
def invoice_embedder():
    """Embeds the invoice chunk slightly further from the query than the others."""
    return FakeEmbeddingClient(
        vectors={
            "what is": [1.0, 0.0],
            "invoice": [0.95, 0.3],
        },
        default=[1.0, 0.05],
    )


# Three 20-character windows; the middle one holds the invoice line.
INVOICE_TEXT = "Delivery in 30 days." + "invoice fee 250.00  " + "Contact our office."


@pytest.fixture
def invoice_file(tmp_path):
    path = tmp_path / "invoices.txt"
    path.write_text(INVOICE_TEXT, encoding="utf-8")
    return path
