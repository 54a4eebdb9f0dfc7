"""
Embedding generation via an OpenAI-compatible embeddings endpoint.

Each request posts ``{"model": ..., "input": text}`` and reads the vector
from ``data[0].embedding``. Rate limits (HTTP 429) are retried with
exponential backoff; every other failure surfaces as EmbeddingError.
"""

import asyncio
import logging
import time
from typing import Any, Optional, Protocol

import httpx
import numpy as np
from numpy.typing import NDArray

from notesqa.config import settings

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Raised when a text could not be embedded."""

    def __init__(self, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class EmbedderProtocol(Protocol):
    """Protocol that all embedders must implement."""

    dimension: int

    async def aembed(self, text: str) -> NDArray[np.float32]:
        """Embed a single text."""
        ...


class OpenAIEmbedder:
    """
    Generate embeddings using an OpenAI-compatible embeddings API.

    Example:
        >>> embedder = OpenAIEmbedder()
        >>> vector = embedder.embed("Groceries for Saturday")
        >>> vector.shape
        (1536,)
    """

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        dimension: Optional[int] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        initial_retry_delay: float = 1.0,
    ) -> None:
        """
        Initialize the embedder.

        Args:
            model: Embedding model name (default from settings)
            api_key: Bearer token (default from settings)
            api_url: Embeddings endpoint (default from settings)
            dimension: Expected vector dimension (default from settings)
            timeout: Request timeout in seconds (default from settings)
            max_retries: Attempts per text when rate limited (default from settings)
            initial_retry_delay: First backoff delay in seconds
        """
        self.model = model or settings.embedding_model
        self.api_key = api_key or settings.openai_api_key_value
        self.api_url = api_url or settings.embedding_api_url
        self.dimension = dimension or settings.embedding_dimension
        self.timeout = timeout or settings.embedding_timeout
        self.max_retries = max_retries or settings.embedding_max_retries
        self.initial_retry_delay = initial_retry_delay

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, text: str) -> dict[str, Any]:
        return {"model": self.model, "input": text}

    def _parse(self, response: httpx.Response) -> NDArray[np.float32]:
        """Extract and validate the vector from a response."""
        try:
            body = response.json()
            vector = np.asarray(body["data"][0]["embedding"], dtype=np.float32)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError(f"Malformed embeddings response: {e!r}") from e

        if vector.ndim != 1 or vector.shape[0] != self.dimension:
            raise EmbeddingError(
                f"Expected embedding of dimension {self.dimension}, got shape {vector.shape}"
            )
        return vector

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_error:
            raise EmbeddingError(
                f"Embeddings endpoint returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

    def embed(self, text: str) -> NDArray[np.float32]:
        """
        Embed a single text.

        Args:
            text: Text to embed

        Returns:
            Array of shape (dimension,)

        Raises:
            EmbeddingError: On HTTP, network or payload errors
        """
        retry_delay = self.initial_retry_delay

        try:
            with httpx.Client(timeout=self.timeout) as client:
                for attempt in range(self.max_retries):
                    response = client.post(
                        self.api_url, json=self._payload(text), headers=self._headers()
                    )

                    # Handle rate limiting with exponential backoff
                    if response.status_code == 429 and attempt < self.max_retries - 1:
                        logger.warning(
                            "Embeddings rate limited, retrying in %.1fs (attempt %d/%d)",
                            retry_delay,
                            attempt + 1,
                            self.max_retries,
                        )
                        time.sleep(retry_delay)
                        retry_delay *= 2
                        continue

                    self._raise_for_status(response)
                    return self._parse(response)
        except httpx.HTTPError as e:
            raise EmbeddingError(f"Embeddings request failed: {e!r}") from e

        # This shouldn't be reached, but just in case
        raise EmbeddingError("Embeddings request failed after all retries")

    async def aembed(self, text: str) -> NDArray[np.float32]:
        """
        Async version of embed.

        Args:
            text: Text to embed

        Returns:
            Array of shape (dimension,)

        Raises:
            EmbeddingError: On HTTP, network or payload errors
        """
        retry_delay = self.initial_retry_delay

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                for attempt in range(self.max_retries):
                    response = await client.post(
                        self.api_url, json=self._payload(text), headers=self._headers()
                    )

                    # Handle rate limiting with exponential backoff
                    if response.status_code == 429 and attempt < self.max_retries - 1:
                        logger.warning(
                            "Embeddings rate limited, retrying in %.1fs (attempt %d/%d)",
                            retry_delay,
                            attempt + 1,
                            self.max_retries,
                        )
                        await asyncio.sleep(retry_delay)
                        retry_delay *= 2
                        continue

                    self._raise_for_status(response)
                    return self._parse(response)
        except httpx.HTTPError as e:
            raise EmbeddingError(f"Embeddings request failed: {e!r}") from e

        # This shouldn't be reached, but just in case
        raise EmbeddingError("Embeddings request failed after all retries")
