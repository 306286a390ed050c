"""Console reporter with Rich formatting."""

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rag.models.schemas import (
    ChatResponse,
    Conversation,
    Document,
    KnowledgeStatus,
    UploadResponse,
)


class ConsoleReporter:
    """Render answers, documents and conversations on the console."""

    # Role colors
    ROLE_COLORS = {
        "user": "cyan",
        "assistant": "green",
    }

    # Citation preview length
    PREVIEW_CHARS = 80

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def report_answer(self, response: ChatResponse) -> None:
        """Print an answer with its citations."""
        mode = "grounded" if response.grounded else "ungrounded"
        title = f"Answer [dim]({mode}, conversation {response.conversation_id})[/dim]"

        self.console.print()
        self.console.print(Panel(response.answer.strip(), title=title, style="bold"))

        if not response.citations:
            self.console.print("[yellow]No document citations.[/yellow]")
            return

        table = Table(title="Citations", show_header=True)
        table.add_column("#", justify="right", width=3)
        table.add_column("Document", style="cyan")
        table.add_column("Chunk", justify="right")
        table.add_column("Excerpt")

        for i, citation in enumerate(response.citations, 1):
            excerpt = " ".join(citation.content.split())
            if len(excerpt) > self.PREVIEW_CHARS:
                excerpt = excerpt[: self.PREVIEW_CHARS - 3] + "..."
            table.add_row(str(i), citation.filename, str(citation.chunk_index), excerpt)

        self.console.print(table)
        self.console.print()

    def report_upload(self, response: UploadResponse) -> None:
        self.console.print(
            f"[green]{response.message}[/green]: {response.filename} "
            f"({response.chunks_created} chunks, id {response.document_id})"
        )

    def report_documents(self, documents: List[Document]) -> None:
        """Print the corpus as a table."""
        if not documents:
            self.console.print("[yellow]No documents ingested yet.[/yellow]")
            return

        table = Table(title="Documents", show_header=True)
        table.add_column("ID", style="dim")
        table.add_column("Filename", style="cyan")
        table.add_column("Type")
        table.add_column("Chunks", justify="right")
        table.add_column("Uploaded")

        for doc in documents:
            table.add_row(
                doc.id[:8],
                doc.filename,
                doc.content_type,
                str(len(doc.chunks)),
                doc.uploaded_at.strftime("%Y-%m-%d %H:%M"),
            )

        table.add_section()
        table.add_row("[bold]Total[/bold]", "", "", f"[bold]{sum(len(d.chunks) for d in documents)}[/bold]", "")
        self.console.print(table)

    def report_conversations(self, conversations: List[Conversation]) -> None:
        if not conversations:
            self.console.print("[yellow]No conversations yet.[/yellow]")
            return

        table = Table(title="Conversations", show_header=True)
        table.add_column("ID", style="dim")
        table.add_column("Created")
        table.add_column("Messages", justify="right")
        table.add_column("First question")

        for conversation in conversations:
            first = next((m.content for m in conversation.messages if m.role == "user"), "")
            if len(first) > 50:
                first = first[:47] + "..."
            table.add_row(
                conversation.id,
                conversation.created_at.strftime("%Y-%m-%d %H:%M"),
                str(len(conversation.messages)),
                first,
            )

        self.console.print(table)

    def report_conversation(self, conversation: Conversation) -> None:
        """Print every message of a conversation."""
        for message in conversation.messages:
            color = self.ROLE_COLORS.get(message.role, "white")
            self.console.print(
                f"[{color}]{message.role}[/{color}] "
                f"[dim]{message.timestamp.strftime('%H:%M:%S')}[/dim]: {message.content}"
            )

    def report_status(self, status: KnowledgeStatus) -> None:
        table = Table(title="Knowledge base", show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        table.add_row("Documents", str(status.total_documents))
        table.add_row("Chunks", str(status.total_chunks))
        table.add_row("Embedding dimension", str(status.embedding_dimension or "-"))
        table.add_row("Embedding model", status.embedding_model)
        self.console.print(table)
