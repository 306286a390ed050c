#!/usr/bin/env python3
"""
LocalRAG Assistant - CLI Entry Point

Answers questions about a local document corpus using an Ollama-compatible
LLM backend:
1. ingest: extract, chunk and embed a PDF, DOCX, TXT or MD file
2. ask: hybrid retrieval over the corpus, then a grounded answer with citations
3. rebuild: reload the corpus snapshot from disk
4. documents / conversations: inspect what is stored
5. serve: run the HTTP API

Usage:
    python local_rag.py ingest handbook.pdf
    python local_rag.py ask "What is the late payment fee?"
    python local_rag.py ask "And for 2024?" --conversation <id>
    python local_rag.py serve --port 8000
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from config import Config, configure_logging, set_config
from rag.chat.engine import ChatEngine
from rag.models.schemas import ChatRequest
from report.console_reporter import ConsoleReporter


def build_engine(env_file: Optional[str]) -> ChatEngine:
    """Resolve configuration and create a chat engine."""
    config = Config.from_env(Path(env_file) if env_file else None)
    set_config(config)
    configure_logging(config)
    return ChatEngine(config)


async def _run(engine: ChatEngine, coro):
    try:
        return await coro
    finally:
        await engine.aclose()


@click.group()
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a .env file with settings. Default: .env in the working directory",
)
@click.pass_context
def cli(ctx: click.Context, env_file: Optional[str]) -> None:
    """Question answering over a local document corpus."""
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def ingest(ctx: click.Context, input_file: str) -> None:
    """
    Add a document to the corpus.

    INPUT_FILE: PDF, DOCX, TXT or MD file to ingest.
    """
    engine = build_engine(ctx.obj["env_file"])
    path = Path(input_file)

    try:
        result = asyncio.run(_run(engine, engine.ingestion.ingest(path)))
    except Exception as e:
        click.echo(f"Error ingesting {input_file}: {e}", err=True)
        sys.exit(1)

    ConsoleReporter().report_upload(result)


@cli.command()
@click.argument("question")
@click.option(
    "--conversation",
    "-c",
    "conversation_id",
    help="Continue an existing conversation",
)
@click.pass_context
def ask(ctx: click.Context, question: str, conversation_id: Optional[str]) -> None:
    """
    Ask a question about the corpus.

    QUESTION: The question to answer.

    Examples:

        python local_rag.py ask "What is the invoice total?"

        python local_rag.py ask "Why?" -c 3f0c...
    """
    engine = build_engine(ctx.obj["env_file"])

    try:
        request = ChatRequest(query=question, conversation_id=conversation_id)
    except ValueError as e:
        click.echo(f"Invalid question: {e}", err=True)
        sys.exit(1)

    try:
        response = asyncio.run(_run(engine, engine.chat(request)))
    except Exception as e:
        click.echo(f"Error answering question: {e}", err=True)
        sys.exit(1)

    ConsoleReporter().report_answer(response)


@cli.command()
@click.pass_context
def rebuild(ctx: click.Context) -> None:
    """Reload the corpus from its snapshot file."""
    engine = build_engine(ctx.obj["env_file"])

    try:
        result = asyncio.run(_run(engine, engine.rebuild_knowledge_base()))
    except Exception as e:
        click.echo(f"Error rebuilding index: {e}", err=True)
        sys.exit(1)

    click.echo(f"{result.message}: {result.document_count} documents, {result.chunk_count} chunks")


@cli.command()
@click.option("--status", is_flag=True, help="Show corpus statistics instead of the list")
@click.pass_context
def documents(ctx: click.Context, status: bool) -> None:
    """List ingested documents."""
    engine = build_engine(ctx.obj["env_file"])
    reporter = ConsoleReporter()

    if status:
        reporter.report_status(engine.get_knowledge_status())
    else:
        reporter.report_documents(engine.document_store.list_documents())


@cli.command()
@click.argument("conversation_id", required=False)
@click.pass_context
def conversations(ctx: click.Context, conversation_id: Optional[str]) -> None:
    """
    List conversations, or show one.

    CONVERSATION_ID: Optional ID of the conversation to print.
    """
    engine = build_engine(ctx.obj["env_file"])
    reporter = ConsoleReporter()

    if conversation_id is None:
        reporter.report_conversations(engine.conversation_store.list_conversations())
        return

    conversation = engine.conversation_store.get_conversation(conversation_id)
    if conversation is None:
        click.echo(f"Conversation {conversation_id} not found", err=True)
        sys.exit(1)
    reporter.report_conversation(conversation)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address. Default: 127.0.0.1")
@click.option("--port", "-p", default=8000, type=int, help="Port. Default: 8000")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the HTTP API."""
    import uvicorn

    config = Config.from_env(Path(ctx.obj["env_file"]) if ctx.obj["env_file"] else None)
    set_config(config)
    configure_logging(config)

    from api.main import app

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    cli()
