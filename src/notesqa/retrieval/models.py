"""
Records exchanged between the ingestion pipeline, the note store and the
retriever.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray


class DocumentStatus(str, Enum):
    """Lifecycle of an uploaded note."""

    UPLOADED = "uploaded"
    PROCESSED = "processed"
    ERROR = "error"


@dataclass
class DocumentRecord:
    """One uploaded note."""

    tenant_key: str
    """Partition the note belongs to."""

    title: str
    """Display title."""

    file_name: str
    """Original file name."""

    mime_type: str = "text/plain"
    """Content type reported by the uploader."""

    size_bytes: int = 0
    """Size of the note text in bytes."""

    status: DocumentStatus = DocumentStatus.UPLOADED
    """Current lifecycle status."""

    document_id: str | None = None
    """Assigned by the store on insert."""

    @property
    def display_title(self) -> str:
        """Title shown to users, falling back to the file name."""
        return self.title or self.file_name or "Untitled"


@dataclass
class ChunkRecord:
    """An embedded chunk ready for storage."""

    document_id: str
    """Parent note."""

    tenant_key: str
    """Partition the chunk belongs to."""

    chunk_index: int
    """Reading-order position within the note."""

    content: str
    """Chunk text."""

    embedding: NDArray[np.float32] = field(repr=False)
    """Embedding vector of the chunk text."""


@dataclass(frozen=True)
class RetrievalMatch:
    """A stored chunk scored against a query."""

    content: str
    """Chunk text."""

    document_id: str
    """Parent note."""

    score: float
    """Cosine similarity to the query."""

    chunk_index: int = 0
    """Reading-order position of the chunk within its note."""

    tenant_key: str = ""
    """Partition the chunk was stored under."""


@dataclass(frozen=True)
class ContextBlock:
    """A titled passage handed to the text generator."""

    title: str
    """Title of the note the passage came from."""

    content: str
    """Chunk text."""


@dataclass(frozen=True)
class SourceCitation:
    """A note cited by an answer."""

    document_id: str
    """Cited note."""

    title: str
    """Display title of the note."""

    snippet: str
    """Leading characters of the best-matching chunk."""
