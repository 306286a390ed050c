"""
Client for the external text-embedding endpoint.
"""

import logging
from typing import Optional

import httpx

from ..exceptions import EmptyEmbeddingError
from ..retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "nomic-embed-text"
DEFAULT_URL = "http://localhost:11434/api/embed"


def parse_embedding(payload: dict) -> list[float]:
    """
    Pull the vector out of an embedding response.

    Accepts {"embedding": [...]} as well as the batched
    {"embeddings": [[...]]} shape some servers return.
    """
    vector = payload.get("embedding")
    if vector is None:
        vector = payload.get("embeddings") or []
        if vector and isinstance(vector[0], list):
            vector = vector[0]
    return [float(x) for x in vector]


class EmbeddingClient:
    """Wrapper for an HTTP embedding endpoint with bounded retry."""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        model_name: str = DEFAULT_MODEL,
        retry_policy: Optional[RetryPolicy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 100.0,
    ):
        """
        Initialize the embedding client.

        Args:
            url: Embedding endpoint URL.
            model_name: Model name sent with every request.
            retry_policy: Retry policy for failed requests.
            http_client: Optional shared httpx client. One is created if not provided.
            timeout: Per-attempt timeout in seconds for a created client.
        """
        self.url = url
        self.model_name = model_name
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def get_embedding(self, text: str) -> list[float]:
        """
        Generate the embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector.

        Raises:
            UpstreamUnavailableError: If the endpoint keeps failing.
            EmptyEmbeddingError: If the endpoint returns an empty vector.
        """
        logger.debug(f"Getting embedding for text of length {len(text)}")

        async def attempt() -> httpx.Response:
            response = await self._client.post(
                self.url, json={"model": self.model_name, "input": text}
            )
            response.raise_for_status()
            return response

        response = await self.retry_policy.run(attempt, "embedding request")
        embedding = parse_embedding(response.json())

        if not embedding:
            raise EmptyEmbeddingError("Failed to get embedding from LLM")

        return embedding

    async def get_embeddings(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for multiple texts, one request per text.

        Texts are embedded strictly in order and the first failure
        aborts the whole batch.
        """
        if not texts:
            return []

        logger.debug(f"Embedding {len(texts)} texts")
        embeddings = []
        for text in texts:
            embeddings.append(await self.get_embedding(text))
        return embeddings

    async def aclose(self) -> None:
        await self._client.aclose()
