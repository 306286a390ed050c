"""
Prompt templates for the RAG assistant.
"""

from dataclasses import dataclass

GROUNDED_SYSTEM_PROMPT = """You are a helpful assistant that answers questions using ONLY the provided document context.

IMPORTANT RULES:
1. Answer strictly and concisely from the context below
2. Search ALL context chunks before concluding that the answer is missing
3. Pay special attention to numbers, amounts and financial terms such as: {priority_terms}
4. If the context does not contain the answer, say so honestly
5. When convenient, mention the document name and chunk number you used"""


UNGROUNDED_SYSTEM_PROMPT = """You are a friendly, helpful conversational assistant.
No document context is available for this question, so answer from general knowledge.
Be concise, and say so honestly when you do not know something."""


HISTORY_TEMPLATE = """Previous conversation:
{history}"""


CONTEXT_TEMPLATE = """Context:
{context}"""


QUESTION_TEMPLATE = """Question: {question}

Answer:"""


CHUNK_HEADER_TEMPLATE = "[Document: {filename}, Chunk #{chunk_index}]"


FALLBACK_ANSWER = (
    "Sorry, the language model backend is currently unreachable, so I cannot "
    "answer right now. Please try again in a moment."
)


EMPTY_RESPONSE_ANSWER = "I couldn't generate a response."


@dataclass(frozen=True)
class PromptTemplates:
    """System instructions for both answering modes."""

    grounded_system: str = GROUNDED_SYSTEM_PROMPT
    ungrounded_system: str = UNGROUNDED_SYSTEM_PROMPT
    priority_terms: tuple[str, ...] = ()

    def system_prompt(self, grounded: bool) -> str:
        if not grounded:
            return self.ungrounded_system
        terms = ", ".join(self.priority_terms) or "amounts, totals, dates"
        return self.grounded_system.format(priority_terms=terms)
