"""
Conversation history persisted to a JSON snapshot file.
"""

import asyncio
import logging
from pathlib import Path
from typing import Literal, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from .models.schemas import Citation, Conversation, Message
from .vectorstore.store import commit_snapshot

logger = logging.getLogger(__name__)

# Default snapshot path
DEFAULT_SNAPSHOT_PATH = Path("data/conversations.json")

_conversations_adapter = TypeAdapter(list[Conversation])


class ConversationStore:
    """
    Append-only chat conversations kept in memory and on disk.

    Uses its own writer lock, independent of the document store. Each
    append builds a new conversation map that replaces the current one
    only after the snapshot has been written.
    """

    def __init__(self, snapshot_path: Optional[Path] = None):
        """
        Initialize the conversation store and load the existing snapshot.

        Args:
            snapshot_path: Path of the JSON snapshot file.
        """
        self.snapshot_path = snapshot_path or DEFAULT_SNAPSHOT_PATH
        self._lock = asyncio.Lock()
        self._conversations: dict[str, Conversation] = self._load()

    def _load(self) -> dict[str, Conversation]:
        if not self.snapshot_path.exists():
            return {}

        try:
            conversations = _conversations_adapter.validate_json(self.snapshot_path.read_bytes())
        except (OSError, ValueError, SchemaError) as e:
            logger.error(f"Error loading conversations from {self.snapshot_path}: {e}")
            return {}

        logger.info(f"Loaded {len(conversations)} conversations from storage")
        return {c.id: c for c in conversations}

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """
        Get a conversation with all its messages.

        Args:
            conversation_id: Conversation ID.

        Returns:
            A copy of the conversation, or None if not found.
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return None
        return conversation.model_copy(deep=True)

    def get_recent_messages(self, conversation_id: str, limit: int = 5) -> list[Message]:
        """
        Get the last messages of a conversation, oldest first.

        Returns an empty list for unknown conversations.
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None or limit <= 0:
            return []
        return [m.model_copy(deep=True) for m in conversation.messages[-limit:]]

    async def append_message(
        self,
        conversation_id: str,
        role: Literal["user", "assistant"],
        content: str,
        citations: Optional[list[Citation]] = None,
    ) -> Message:
        """
        Add a message to a conversation, creating it on first use.

        Args:
            conversation_id: Conversation ID.
            role: Message role ('user' or 'assistant').
            content: Message content.
            citations: Optional list of source citations.

        Returns:
            The stored message.

        Raises:
            PersistenceError: If the snapshot cannot be written.
        """
        message = Message(
            role=role,
            content=content,
            citations=[c.model_copy() for c in citations] if citations is not None else None,
        )

        async with self._lock:
            existing = self._conversations.get(conversation_id)
            if existing is None:
                logger.debug(f"Created conversation: {conversation_id}")
                updated = Conversation(id=conversation_id, messages=[message])
            else:
                updated = existing.model_copy(update={"messages": existing.messages + [message]})

            conversations = dict(self._conversations)
            conversations[conversation_id] = updated

            def apply() -> None:
                self._conversations = conversations

            await commit_snapshot(
                self.snapshot_path,
                _conversations_adapter.dump_json(list(conversations.values()), indent=2),
                apply,
            )

        logger.debug(f"Added {role} message to conversation {conversation_id}")
        return message.model_copy(deep=True)

    def list_conversations(self) -> list[Conversation]:
        """List conversations, most recently created first."""
        conversations = list(self._conversations.values())
        conversations.sort(key=lambda c: c.created_at, reverse=True)
        return [c.model_copy(deep=True) for c in conversations]

    async def rebuild(self) -> None:
        """Reload conversations from the snapshot file."""
        async with self._lock:
            self._conversations = self._load()

    def get_stats(self) -> dict:
        """
        Get conversation statistics.

        Returns:
            Dict with stats.
        """
        conversations = self._conversations
        return {
            "conversation_count": len(conversations),
            "message_count": sum(len(c.messages) for c in conversations.values()),
            "snapshot_path": str(self.snapshot_path),
        }
