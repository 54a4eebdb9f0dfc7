"""
LLM factory for creating text generators based on configuration.
"""

from typing import Protocol


class LLMProtocol(Protocol):
    """Protocol that all text generators must implement."""

    async def ainvoke(self, prompt: str, system: str = ...) -> str:
        """Call the LLM with a prompt and return the response."""
        ...


def create_llm(temperature: float | None = None) -> LLMProtocol:
    """
    Create a text generator from settings.

    Args:
        temperature: Optional temperature override. If None, uses settings.llm_temperature

    Returns:
        Client implementing LLMProtocol
    """
    from notesqa.llm.chat_endpoint import create_chat_llm

    return create_chat_llm(temperature=temperature)
