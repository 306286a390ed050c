"""
Client for the external chat-completion endpoint.
"""

import logging
from typing import Optional

import httpx

from ..retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama3.2"
DEFAULT_URL = "http://localhost:11434/api/chat"


class ChatCompletionClient:
    """Sends a single-turn prompt to a chat-completion endpoint."""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        model_name: str = DEFAULT_MODEL,
        retry_policy: Optional[RetryPolicy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 100.0,
    ):
        self.url = url
        self.model_name = model_name
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def complete(self, prompt: str) -> Optional[str]:
        """
        Generate a reply to the prompt.

        Returns:
            The reply text, or None if the response carried no message.

        Raises:
            UpstreamUnavailableError: If the endpoint keeps failing.
        """
        payload = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }

        async def attempt() -> httpx.Response:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
            return response

        response = await self.retry_policy.run(attempt, "chat completion")
        message = response.json().get("message") or {}
        return message.get("content")

    async def aclose(self) -> None:
        await self._client.aclose()
