"""
Note ingestion and retrieval components.

Components:
    - chunker: Split note text into overlapping fixed-size windows
    - embeddings: Generate vector embeddings via an OpenAI-compatible API
    - store: Note and chunk storage with tenant-scoped similarity search
    - retriever: Ranking contract on top of the store
    - ingestion: Chunk, embed and store uploaded notes
"""

from notesqa.retrieval.chunker import Chunk, chunk_text
from notesqa.retrieval.embeddings import EmbeddingError, OpenAIEmbedder
from notesqa.retrieval.ingestion import IngestionPipeline, IngestionResult, SourceDocument
from notesqa.retrieval.models import ChunkRecord, DocumentRecord, DocumentStatus, RetrievalMatch
from notesqa.retrieval.retriever import Retriever
from notesqa.retrieval.store import InMemoryNoteStore, NoteStore

__all__ = [
    "Chunk",
    "chunk_text",
    "EmbeddingError",
    "OpenAIEmbedder",
    "IngestionPipeline",
    "IngestionResult",
    "SourceDocument",
    "ChunkRecord",
    "DocumentRecord",
    "DocumentStatus",
    "RetrievalMatch",
    "Retriever",
    "InMemoryNoteStore",
    "NoteStore",
]
