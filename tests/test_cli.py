"""Tests for the command-line interface."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import local_rag
import pytest
from click.testing import CliRunner
from rag.exceptions import UpstreamUnavailableError


class TestCli:
    """Test CLI commands against an engine with fake clients."""

    @pytest.fixture
    def engine(self, make_engine, invoice_embedder):
        return make_engine(embedding_client=invoice_embedder, chunk_size=20, chunk_overlap=0)

    @pytest.fixture
    def runner(self, engine, monkeypatch):
        monkeypatch.setattr(local_rag, "build_engine", lambda env_file: engine)
        return CliRunner()

    def test_ingest_then_ask(self, runner, invoice_file):
        result = runner.invoke(local_rag.cli, ["ingest", str(invoice_file)])
        assert result.exit_code == 0
        assert "3 chunks" in result.output

        result = runner.invoke(local_rag.cli, ["ask", "what is the invoice fee amount 250.00"])
        assert result.exit_code == 0
        assert "answer 1" in result.output
        assert "invoices.txt" in result.output

    def test_ingest_unsupported(self, runner, tmp_path):
        path = tmp_path / "image.png"
        path.write_bytes(b"\x89PNG")

        result = runner.invoke(local_rag.cli, ["ingest", str(path)])
        assert result.exit_code == 1

    def test_ingest_embedding_unavailable(self, runner, invoice_embedder, invoice_file):
        invoice_embedder.error = UpstreamUnavailableError("embedding request unavailable")
        result = runner.invoke(local_rag.cli, ["ingest", str(invoice_file)])
        assert result.exit_code == 1

    def test_ask_blank_question(self, runner):
        result = runner.invoke(local_rag.cli, ["ask", "   "])
        assert result.exit_code == 1

    def test_documents_and_status(self, runner, invoice_file):
        runner.invoke(local_rag.cli, ["ingest", str(invoice_file)])

        result = runner.invoke(local_rag.cli, ["documents"])
        assert result.exit_code == 0
        assert "invoices.txt" in result.output

        result = runner.invoke(local_rag.cli, ["documents", "--status"])
        assert result.exit_code == 0
        assert "nomic-embed-text" in result.output

    def test_conversations(self, runner, engine):
        runner.invoke(local_rag.cli, ["ask", "hello"])
        conversation_id = engine.conversation_store.list_conversations()[0].id

        result = runner.invoke(local_rag.cli, ["conversations"])
        assert result.exit_code == 0
        assert "Conversations" in result.output

        result = runner.invoke(local_rag.cli, ["conversations", conversation_id])
        assert result.exit_code == 0
        assert "answer 1" in result.output

        result = runner.invoke(local_rag.cli, ["conversations", "missing"])
        assert result.exit_code == 1

    def test_rebuild(self, runner, invoice_file):
        runner.invoke(local_rag.cli, ["ingest", str(invoice_file)])
        result = runner.invoke(local_rag.cli, ["rebuild"])
        assert result.exit_code == 0
        assert "1 documents, 3 chunks" in result.output
