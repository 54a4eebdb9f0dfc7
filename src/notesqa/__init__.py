"""
notesqa: Question answering over personal notes

This package ingests a user's notes into per-tenant vector spaces and answers
natural-language questions from them, returning the answer together with the
notes it was grounded on.

Key Components:
    - retrieval: chunking, embedding, note storage, ranking and ingestion
    - nodes: LangGraph nodes (question embedding, retrieval, assembly, generation)
    - graph: LangGraph workflow definition and the AnswerOrchestrator
    - llm: chat completion client for answer generation
    - api: FastAPI REST endpoints
    - cli: Typer command-line interface

Example:
    >>> from notesqa.retrieval.resources import get_notes_service
    >>> service = get_notes_service()
    >>> await service.ingest("my-device", [{"name": "todo.txt", "content": "Buy milk"}])
    >>> result = await service.ask("my-device", "What do I need to buy?")
    >>> print(result.answer)
"""

__version__ = "0.1.0"

from notesqa.config import settings

__all__ = [
    "__version__",
    "settings",
]
