"""
Note storage.

NoteStore is the contract the pipeline needs from durable storage: insert
notes and chunks, move a note through its lifecycle, look up titles in one
batch, and run a tenant-scoped cosine similarity search.

InMemoryNoteStore implements it over numpy arrays, with optional
persistence to a directory:

    <path>/documents.json   note records
    <path>/chunks.json      chunk metadata in insertion order
    <path>/embeddings.npy   chunk embeddings, one row per chunk
"""

import json
import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import asdict
from pathlib import Path
from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from notesqa.retrieval.models import (
    ChunkRecord,
    DocumentRecord,
    DocumentStatus,
    RetrievalMatch,
)
from notesqa.retrieval.similarity import cosine_scores, top_k_stable

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS = {
    DocumentStatus.UPLOADED: {DocumentStatus.PROCESSED, DocumentStatus.ERROR},
    DocumentStatus.PROCESSED: set(),
    DocumentStatus.ERROR: set(),
}


class InvalidStatusTransition(ValueError):
    """Raised when a note status would move backwards or sideways."""


class NoteStore(Protocol):
    """Storage operations used by ingestion and retrieval."""

    def insert_document(self, record: DocumentRecord) -> str:
        """Store a note and return its id."""
        ...

    def insert_chunks(self, records: Sequence[ChunkRecord]) -> None:
        """Store the chunks of one note."""
        ...

    def update_document_status(self, document_id: str, status: DocumentStatus) -> None:
        """Move a note to a new lifecycle status."""
        ...

    def get_titles(self, document_ids: Iterable[str]) -> dict[str, str]:
        """Map note ids to display titles."""
        ...

    def search(
        self,
        tenant_key: str,
        query_embedding: NDArray[np.float32],
        k: int,
    ) -> list[RetrievalMatch]:
        """Top-k chunks of one tenant by cosine similarity."""
        ...

    def flush(self) -> None:
        """Make pending writes durable."""
        ...


class InMemoryNoteStore:
    """
    numpy-backed note store.

    Example:
        >>> store = InMemoryNoteStore()
        >>> note_id = store.insert_document(DocumentRecord("t", "Todo", "todo.txt"))
        >>> store.insert_chunks([ChunkRecord(note_id, "t", 0, "milk", vector)])
        >>> store.search("t", vector, k=8)
    """

    def __init__(self, path: str | Path | None = None) -> None:
        """
        Initialize the store.

        Args:
            path: Directory used by save/load/flush (optional)
        """
        self.path = Path(path) if path is not None else None
        self._documents: dict[str, DocumentRecord] = {}
        self._chunks: list[ChunkRecord] = []
        self._chunk_keys: set[tuple[str, int]] = set()

    @property
    def document_count(self) -> int:
        """Number of stored notes."""
        return len(self._documents)

    @property
    def chunk_count(self) -> int:
        """Number of stored chunks."""
        return len(self._chunks)

    def get_document(self, document_id: str) -> DocumentRecord | None:
        """Return a stored note, or None."""
        return self._documents.get(document_id)

    def list_documents(self, tenant_key: str) -> list[DocumentRecord]:
        """All notes of one tenant in insertion order."""
        return [doc for doc in self._documents.values() if doc.tenant_key == tenant_key]

    def list_chunks(self, document_id: str) -> list[ChunkRecord]:
        """All chunks of one note in reading order."""
        chunks = [c for c in self._chunks if c.document_id == document_id]
        return sorted(chunks, key=lambda c: c.chunk_index)

    # ==========================================================================
    # Writes
    # ==========================================================================
    def insert_document(self, record: DocumentRecord) -> str:
        document_id = str(uuid.uuid4())
        record.document_id = document_id
        record.status = DocumentStatus.UPLOADED
        self._documents[document_id] = record
        return document_id

    def insert_chunks(self, records: Sequence[ChunkRecord]) -> None:
        """
        Store the chunks of one note.

        Validation runs before anything is written, so a rejected batch
        leaves the store untouched.

        Raises:
            KeyError: If a chunk refers to an unknown note
            ValueError: If a chunk index repeats or the tenant does not match
        """
        batch_keys: set[tuple[str, int]] = set()
        for record in records:
            document = self._documents.get(record.document_id)
            if document is None:
                raise KeyError(f"Unknown document: {record.document_id}")
            if record.tenant_key != document.tenant_key:
                raise ValueError(
                    f"Chunk tenant does not match document {record.document_id}"
                )
            key = (record.document_id, record.chunk_index)
            if key in self._chunk_keys or key in batch_keys:
                raise ValueError(
                    f"Duplicate chunk index {record.chunk_index} for document {record.document_id}"
                )
            batch_keys.add(key)

        for record in records:
            record.embedding = np.asarray(record.embedding, dtype=np.float32).reshape(-1)
            self._chunks.append(record)
        self._chunk_keys |= batch_keys

    def update_document_status(self, document_id: str, status: DocumentStatus) -> None:
        """
        Move a note to a new lifecycle status.

        Raises:
            KeyError: If the note does not exist
            InvalidStatusTransition: If the transition is not allowed
        """
        document = self._documents.get(document_id)
        if document is None:
            raise KeyError(f"Unknown document: {document_id}")

        status = DocumentStatus(status)
        if status not in _ALLOWED_TRANSITIONS[document.status]:
            raise InvalidStatusTransition(
                f"Cannot move document {document_id} from {document.status.value} to {status.value}"
            )
        document.status = status

    # ==========================================================================
    # Reads
    # ==========================================================================
    def get_titles(self, document_ids: Iterable[str]) -> dict[str, str]:
        return {
            document_id: self._documents[document_id].display_title
            for document_id in set(document_ids)
            if document_id in self._documents
        }

    def search(
        self,
        tenant_key: str,
        query_embedding: NDArray[np.float32],
        k: int,
    ) -> list[RetrievalMatch]:
        """
        Top-k chunks of one tenant by cosine similarity.

        Only chunks stored under ``tenant_key`` are scored. Equal scores
        keep insertion order.

        Raises:
            ValueError: If the query dimension differs from the stored embeddings
        """
        candidates = [c for c in self._chunks if c.tenant_key == tenant_key]
        if not candidates:
            return []

        matrix = np.vstack([c.embedding for c in candidates])
        scores = cosine_scores(matrix, query_embedding)

        return [
            RetrievalMatch(
                content=candidates[i].content,
                document_id=candidates[i].document_id,
                score=float(scores[i]),
                chunk_index=candidates[i].chunk_index,
                tenant_key=candidates[i].tenant_key,
            )
            for i in top_k_stable(scores, k)
        ]

    # ==========================================================================
    # Persistence
    # ==========================================================================
    def save(self, path: str | Path | None = None) -> None:
        """
        Save notes, chunk metadata and embeddings to a directory.

        Args:
            path: Target directory (default: the store's own path)

        Raises:
            ValueError: If no path is given or configured
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("No store path configured")
        target.mkdir(parents=True, exist_ok=True)

        documents = []
        for record in self._documents.values():
            data = asdict(record)
            data["status"] = record.status.value
            documents.append(data)

        chunks = [
            {
                "document_id": c.document_id,
                "tenant_key": c.tenant_key,
                "chunk_index": c.chunk_index,
                "content": c.content,
            }
            for c in self._chunks
        ]

        if self._chunks:
            embeddings = np.vstack([c.embedding for c in self._chunks])
        else:
            embeddings = np.empty((0, 0), dtype=np.float32)

        # Every file is fully written before any is replaced
        names = ("documents.json", "chunks.json", "embeddings.npy")
        temps = [target / f"{name}.tmp" for name in names]
        try:
            with temps[0].open("w", encoding="utf-8") as f:
                json.dump(documents, f, indent=2, ensure_ascii=False)
            with temps[1].open("w", encoding="utf-8") as f:
                json.dump(chunks, f, indent=2, ensure_ascii=False)
            with temps[2].open("wb") as f:
                np.save(f, embeddings)
            for temp, name in zip(temps, names):
                temp.replace(target / name)
        finally:
            for temp in temps:
                temp.unlink(missing_ok=True)

    def load(self, path: str | Path | None = None) -> None:
        """
        Replace the store contents with a saved directory.

        Raises:
            FileNotFoundError: If any of the store files is missing
            ValueError: If chunk metadata and embeddings disagree in length
        """
        source = Path(path) if path is not None else self.path
        if source is None:
            raise ValueError("No store path configured")

        documents_file = source / "documents.json"
        chunks_file = source / "chunks.json"
        embeddings_file = source / "embeddings.npy"
        for required in (documents_file, chunks_file, embeddings_file):
            if not required.exists():
                raise FileNotFoundError(f"Store file not found: {required}")

        with documents_file.open(encoding="utf-8") as f:
            documents_data = json.load(f)
        with chunks_file.open(encoding="utf-8") as f:
            chunks_data = json.load(f)
        embeddings = np.load(embeddings_file)

        if len(chunks_data) != len(embeddings):
            raise ValueError(
                f"Chunk metadata ({len(chunks_data)}) and embeddings ({len(embeddings)}) differ"
            )

        self._documents = {}
        for data in documents_data:
            data["status"] = DocumentStatus(data["status"])
            record = DocumentRecord(**data)
            self._documents[record.document_id] = record

        self._chunks = [
            ChunkRecord(embedding=embeddings[i].astype(np.float32), **data)
            for i, data in enumerate(chunks_data)
        ]
        self._chunk_keys = {(c.document_id, c.chunk_index) for c in self._chunks}

        logger.info(
            "Loaded note store from %s (%d notes, %d chunks)",
            source,
            len(self._documents),
            len(self._chunks),
        )

    def flush(self) -> None:
        """Persist to the configured path; no-op for purely in-memory stores."""
        if self.path is not None:
            self.save()

    @classmethod
    def from_disk(cls, path: str | Path) -> "InMemoryNoteStore":
        """
        Create a store bound to ``path``, loading it when it already exists.

        Args:
            path: Store directory

        Returns:
            InMemoryNoteStore with loaded data
        """
        store = cls(path)
        if (Path(path) / "documents.json").exists():
            store.load()
        return store
