"""
Chat engine, prompt templates and context building components.
"""

# Imports are done lazily to avoid circular dependencies
# Use: from rag.chat.engine import ChatEngine

__all__ = ["ChatEngine", "ChatCompletionClient", "ContextBuilder", "PromptTemplates"]
