"""LLM clients for notesqa."""

from notesqa.llm.chat_endpoint import (
    ChatCompletionLLM,
    GenerationError,
    create_chat_llm,
)
from notesqa.llm.factory import LLMProtocol, create_llm

__all__ = [
    "ChatCompletionLLM",
    "GenerationError",
    "create_chat_llm",
    "LLMProtocol",
    "create_llm",
]
