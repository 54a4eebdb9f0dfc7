"""
Chat completion client for OpenAI-compatible endpoints.

Sends a system instruction plus the assembled prompt and returns the
generated text unchanged.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."

_RETRYABLE_STATUS = (502, 503, 504)


class GenerationError(Exception):
    """Raised when the text generator could not produce an answer."""

    def __init__(self, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class ChatCompletionLLM:
    """LLM client for OpenAI-compatible chat completion endpoints."""

    def __init__(
        self,
        endpoint_url: str,
        model: str,
        api_key: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        timeout: float = 120.0,
        max_retries: int = 3,
        retry_delay: float = 2.0,
    ):
        """
        Initialize the chat client.

        Args:
            endpoint_url: Full URL to the /v1/chat/completions endpoint
            model: Model name sent with every request
            api_key: Bearer token (omitted from headers when empty)
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate
            timeout: Request timeout in seconds
            max_retries: Maximum attempts for 502/503/504 and network errors
            retry_delay: Initial delay between retries (uses exponential backoff)
        """
        self.endpoint_url = endpoint_url
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _payload(self, prompt: str, system: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    async def ainvoke(self, prompt: str, system: str = DEFAULT_SYSTEM_PROMPT) -> str:
        """
        Call the LLM with a prompt.

        Retries with exponential backoff on 502/503/504 responses and on
        timeouts or connection errors.

        Args:
            prompt: The user prompt
            system: The system instruction

        Returns:
            The generated text, or an empty string if the endpoint sent none

        Raises:
            GenerationError: If the request fails after all retries or returns
                a non-retryable error
        """
        payload = self._payload(prompt, system)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                last_attempt = attempt == self.max_retries - 1
                delay = self.retry_delay * (2**attempt)

                try:
                    response = await client.post(
                        self.endpoint_url, json=payload, headers=self._headers()
                    )
                except (httpx.TimeoutException, httpx.NetworkError) as e:
                    if last_attempt:
                        raise GenerationError(f"Chat request failed: {e!r}") from e
                    logger.warning(
                        "Connection error: %s, retrying in %.1fs (attempt %d/%d)",
                        e,
                        delay,
                        attempt + 1,
                        self.max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue

                if response.status_code in _RETRYABLE_STATUS and not last_attempt:
                    logger.warning(
                        "Endpoint returned %d, retrying in %.1fs (attempt %d/%d)",
                        response.status_code,
                        delay,
                        attempt + 1,
                        self.max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue

                if response.is_error:
                    raise GenerationError(
                        f"Chat endpoint returned {response.status_code}: {response.text[:200]}",
                        status_code=response.status_code,
                    )

                try:
                    result = response.json()
                except ValueError as e:
                    raise GenerationError(f"Malformed chat response: {e!r}") from e
                return _extract_content(result)

        # If we get here, max_retries was zero
        raise GenerationError("All retry attempts failed")


def _extract_content(result: Any) -> str:
    try:
        content = result["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content or ""


def create_chat_llm(
    endpoint_url: Optional[str] = None,
    temperature: Optional[float] = None,
) -> ChatCompletionLLM:
    """
    Create a chat client from settings.

    Args:
        endpoint_url: OpenAI-compatible endpoint URL. If None, uses settings.
        temperature: Sampling temperature. If None, uses settings.

    Returns:
        Configured ChatCompletionLLM instance
    """
    from notesqa.config import settings

    return ChatCompletionLLM(
        endpoint_url=endpoint_url or settings.chat_completions_url,
        model=settings.llm_model,
        api_key=settings.openai_api_key_value,
        temperature=settings.llm_temperature if temperature is None else temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout,
        max_retries=settings.llm_max_retries,
    )
