"""
Pytest configuration and shared fixtures.

Provides common fixtures for:
    - Fake embedder and text generator collaborators
    - Note stores and services wired to the fakes
    - Sample notes
"""

import asyncio
import hashlib
from pathlib import Path
from typing import Optional

import numpy as np
import pytest

from notesqa.retrieval.embeddings import EmbeddingError

DIMENSION = 8


# =============================================================================
# Fake Collaborators
# =============================================================================

class FakeEmbedder:
    """
    Deterministic embedder for tests.

    Texts listed in ``vectors`` get that vector; any other text gets a
    vector derived from its SHA-256 digest. Texts containing ``fail_on``
    raise EmbeddingError. ``delays`` maps a substring to a sleep in
    seconds, to force out-of-order completion.
    """

    def __init__(
        self,
        dimension: int = DIMENSION,
        vectors: Optional[dict[str, list[float]]] = None,
        fail_on: Optional[str] = None,
        delays: Optional[dict[str, float]] = None,
    ):
        self.dimension = dimension
        self.vectors = vectors or {}
        self.fail_on = fail_on
        self.delays = delays or {}
        self.calls: list[str] = []

    def vector_for(self, text: str) -> np.ndarray:
        if text in self.vectors:
            return np.asarray(self.vectors[text], dtype=np.float32)
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return np.frombuffer(digest[: self.dimension], dtype=np.uint8).astype(np.float32) + 1.0

    async def aembed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        for marker, delay in self.delays.items():
            if marker in text:
                await asyncio.sleep(delay)
        if self.fail_on is not None and self.fail_on in text:
            raise EmbeddingError(f"Embeddings endpoint returned 500 for {text[:10]!r}", 500)
        return self.vector_for(text)


class FakeLLM:
    """Records every prompt and returns a canned answer."""

    def __init__(self, answer: str = "You need milk. (See: groceries.txt)", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.prompts: list[str] = []
        self.systems: list[str] = []

    async def ainvoke(self, prompt: str, system: str = "") -> str:
        self.prompts.append(prompt)
        self.systems.append(system)
        if self.error is not None:
            raise self.error
        return self.answer


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def store():
    """Provide an empty in-memory note store."""
    from notesqa.retrieval.store import InMemoryNoteStore

    return InMemoryNoteStore()


@pytest.fixture
def service(fake_embedder, store, fake_llm):
    """Provide a NotesService wired to the fakes with small chunks."""
    from notesqa.graph.workflow import AnswerOrchestrator
    from notesqa.retrieval.ingestion import IngestionPipeline
    from notesqa.service import NotesService

    return NotesService(
        fake_embedder,
        store,
        fake_llm,
        pipeline=IngestionPipeline(fake_embedder, store, max_chars=40, overlap=10),
        orchestrator=AnswerOrchestrator(fake_embedder, store, fake_llm, match_limit=4),
    )


@pytest.fixture(autouse=True)
def reset_resources():
    """Reset cached singletons after every test."""
    yield
    from notesqa.retrieval.resources import clear_resource_cache

    clear_resource_cache()


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_notes() -> list[dict]:
    """Provide uploaded note files in the {name, type, content} shape."""
    return [
        {
            "name": "groceries.txt",
            "type": "text/plain",
            "content": "Buy milk, eggs and bread on Saturday morning.",
        },
        {
            "name": "calendar.md",
            "type": "text/markdown",
            "content": "Dentist appointment on Tuesday at 9am. Bring the insurance card.",
        },
    ]


@pytest.fixture
def notes_dir(tmp_path: Path, sample_notes) -> Path:
    """Provide a directory with the sample notes written to disk."""
    directory = tmp_path / "notes"
    directory.mkdir()
    for note in sample_notes:
        (directory / note["name"]).write_text(note["content"], encoding="utf-8")
    return directory


@pytest.fixture
def embedder_factory():
    """Build FakeEmbedder instances with custom vectors, failures or delays."""
    return FakeEmbedder


@pytest.fixture
def llm_factory():
    """Build FakeLLM instances with a custom answer or error."""
    return FakeLLM
