"""
Singleton resource management for the note store, embedder and LLM client.

Uses the same @lru_cache pattern as the settings singleton so each resource
is created once per process and shared by every request.

Usage:
    # In API handlers or CLI commands
    service = get_notes_service()

    # In API startup (explicit initialization)
    status = initialize_resources()

    # In tests (reset cache)
    clear_resource_cache()
"""

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from notesqa.config import settings

if TYPE_CHECKING:
    from notesqa.llm.factory import LLMProtocol
    from notesqa.retrieval.embeddings import OpenAIEmbedder
    from notesqa.retrieval.store import InMemoryNoteStore
    from notesqa.service import NotesService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_note_store() -> "InMemoryNoteStore":
    """
    Get or create the global note store, loading it from settings.store_path
    when a saved store exists there.
    """
    from notesqa.retrieval.store import InMemoryNoteStore

    store = InMemoryNoteStore.from_disk(settings.store_path)
    logger.info(
        "Note store ready at %s (%d notes, %d chunks)",
        settings.store_path,
        store.document_count,
        store.chunk_count,
    )
    return store


@lru_cache(maxsize=1)
def get_embedder() -> "OpenAIEmbedder":
    """Get or create the global embeddings client."""
    from notesqa.retrieval.embeddings import OpenAIEmbedder

    logger.info("Initializing embedder for model: %s", settings.embedding_model)
    return OpenAIEmbedder()


@lru_cache(maxsize=1)
def get_llm() -> "LLMProtocol":
    """Get or create the global text generator client."""
    from notesqa.llm.factory import create_llm

    logger.info("Initializing text generator for model: %s", settings.llm_model)
    return create_llm()


@lru_cache(maxsize=1)
def get_notes_service() -> "NotesService":
    """Get or create the global service wired to the cached resources."""
    from notesqa.service import NotesService

    return NotesService(
        embedder=get_embedder(),
        store=get_note_store(),
        llm=get_llm(),
        max_finished_jobs=settings.ingest_max_finished_jobs,
    )


def initialize_resources() -> dict[str, bool]:
    """
    Explicitly initialize all resources for eager loading.

    Returns:
        dict: Status of each resource initialization

    Raises:
        RuntimeError: If any resource fails to initialize
    """
    status = {}

    try:
        get_note_store()
        status["store"] = True
    except Exception as e:
        status["store"] = False
        raise RuntimeError(f"Failed to load note store: {e}") from e

    try:
        embedder = get_embedder()
        status["embedder"] = embedder.api_key is not None
        if not status["embedder"]:
            logger.warning("OPENAI_API_KEY is not set; embedding requests will be rejected")
    except Exception as e:
        status["embedder"] = False
        raise RuntimeError(f"Failed to create embedder: {e}") from e

    get_notes_service()
    status["service"] = True

    return status


def clear_resource_cache() -> None:
    """
    Clear all cached resources.

    Used in tests to reset state between test cases.
    """
    get_note_store.cache_clear()
    get_embedder.cache_clear()
    get_llm.cache_clear()
    get_notes_service.cache_clear()
    logger.debug("Resource cache cleared")
