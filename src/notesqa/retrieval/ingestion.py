"""
Note ingestion: chunk, embed and store uploaded notes.

Each note goes through:
    1. Skip if its text is empty
    2. Insert the note record (status "uploaded")
    3. Chunk the text
    4. Embed every chunk, concurrently but bounded
    5. Insert all chunk records in index order, then mark the note "processed"

A failure in steps 2-5 marks that note "error" and leaves no chunks behind;
the remaining notes are still ingested.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal, Optional

import numpy as np
from numpy.typing import NDArray

from notesqa.config import settings
from notesqa.retrieval.chunker import Chunk, chunk_text, validate_chunk_params
from notesqa.retrieval.embeddings import EmbedderProtocol, EmbeddingError
from notesqa.retrieval.models import ChunkRecord, DocumentRecord, DocumentStatus
from notesqa.retrieval.store import NoteStore

logger = logging.getLogger(__name__)

IngestionStatus = Literal["processed", "skipped", "error"]


@dataclass(frozen=True)
class SourceDocument:
    """A note as delivered by the uploader, already decoded to text."""

    name: str = "Untitled.txt"
    """File name, also used as the display title."""

    text: str = ""
    """Decoded note text."""

    mime_type: str = "text/plain"
    """Content type reported by the uploader."""


@dataclass
class IngestionResult:
    """Outcome of ingesting one note."""

    name: str
    status: IngestionStatus
    chunk_count: Optional[int] = None
    reason: Optional[str] = None
    document_id: Optional[str] = None


@dataclass(frozen=True)
class IngestionProgress:
    """Embedding progress of one note, by its position in the batch."""

    position: int
    document_name: str
    embedded: int
    total: int


ProgressCallback = Callable[[IngestionProgress], None]


class IngestionPipeline:
    """
    Turns uploaded notes into stored, embedded chunks.

    Example:
        >>> pipeline = IngestionPipeline(embedder, store)
        >>> results = await pipeline.ingest(tenant_key, [SourceDocument("a.txt", "hello")])
        >>> results[0].status
        'processed'
    """

    def __init__(
        self,
        embedder: EmbedderProtocol,
        store: NoteStore,
        *,
        max_chars: Optional[int] = None,
        overlap: Optional[int] = None,
        max_concurrent_documents: Optional[int] = None,
        max_concurrent_embeddings: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Args:
            embedder: Text to vector collaborator
            store: Storage backend
            max_chars: Chunk size (default from settings)
            overlap: Chunk overlap (default from settings)
            max_concurrent_documents: Notes ingested in parallel (default from settings)
            max_concurrent_embeddings: Embedding calls in flight (default from settings)
            progress_callback: Called after every embedded chunk

        Raises:
            ValueError: If the chunking policy is invalid
        """
        self._embedder = embedder
        self._store = store
        self.max_chars = max_chars if max_chars is not None else settings.chunk_max_chars
        self.overlap = overlap if overlap is not None else settings.chunk_overlap
        validate_chunk_params(self.max_chars, self.overlap)

        self.max_concurrent_documents = (
            max_concurrent_documents or settings.ingest_max_concurrent_documents
        )
        self.max_concurrent_embeddings = (
            max_concurrent_embeddings or settings.ingest_max_concurrent_embeddings
        )
        self.progress_callback = progress_callback

    async def ingest(
        self,
        tenant_key: str,
        documents: Sequence[SourceDocument],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> list[IngestionResult]:
        """
        Ingest a batch of notes for one tenant.

        Args:
            tenant_key: Partition the notes belong to
            documents: Notes to ingest
            progress_callback: Overrides the pipeline's callback for this batch

        Returns:
            One result per input note, in input order

        Raises:
            ValueError: If tenant_key is empty
        """
        if not tenant_key:
            raise ValueError("tenant_key is required")

        callback = progress_callback or self.progress_callback
        document_slots = asyncio.Semaphore(self.max_concurrent_documents)
        embedding_slots = asyncio.Semaphore(self.max_concurrent_embeddings)

        async def run(position: int, document: SourceDocument) -> IngestionResult:
            async with document_slots:
                return await self._ingest_document(
                    tenant_key, position, document, embedding_slots, callback
                )

        return list(
            await asyncio.gather(*(run(i, doc) for i, doc in enumerate(documents)))
        )

    async def _ingest_document(
        self,
        tenant_key: str,
        position: int,
        document: SourceDocument,
        embedding_slots: asyncio.Semaphore,
        callback: Optional[ProgressCallback],
    ) -> IngestionResult:
        name = document.name or "Untitled.txt"

        if not document.text:
            logger.info("Skipping %s: empty content", name)
            return IngestionResult(name=name, status="skipped", reason="Empty content")

        try:
            document_id = self._store.insert_document(
                DocumentRecord(
                    tenant_key=tenant_key,
                    title=name,
                    file_name=name,
                    mime_type=document.mime_type or "text/plain",
                    size_bytes=len(document.text.encode("utf-8")),
                )
            )
        except Exception as e:
            logger.error("Failed to create note record for %s: %s", name, e)
            return IngestionResult(name=name, status="error", reason=f"Insert failed: {e}")

        chunks = chunk_text(document.text, self.max_chars, self.overlap)

        try:
            embeddings = await self._embed_chunks(
                position, name, chunks, embedding_slots, callback
            )
            self._store.insert_chunks(
                [
                    ChunkRecord(
                        document_id=document_id,
                        tenant_key=tenant_key,
                        chunk_index=chunk.index,
                        content=chunk.content,
                        embedding=embeddings[chunk.index],
                    )
                    for chunk in chunks
                ]
            )
            self._store.update_document_status(document_id, DocumentStatus.PROCESSED)
        except EmbeddingError as e:
            logger.warning("Embedding failed for %s: %s", name, e.reason)
            return self._fail(name, document_id, e.reason)
        except Exception as e:
            logger.exception("Ingestion failed for %s", name)
            return self._fail(name, document_id, str(e))

        logger.info("Processed %s: %d chunks", name, len(chunks))
        return IngestionResult(
            name=name,
            status="processed",
            chunk_count=len(chunks),
            document_id=document_id,
        )

    def _fail(self, name: str, document_id: str, reason: str) -> IngestionResult:
        try:
            self._store.update_document_status(document_id, DocumentStatus.ERROR)
        except Exception:
            logger.exception("Could not mark note %s as failed", document_id)
        return IngestionResult(
            name=name, status="error", reason=reason, document_id=document_id
        )

    async def _embed_chunks(
        self,
        position: int,
        name: str,
        chunks: list[Chunk],
        embedding_slots: asyncio.Semaphore,
        callback: Optional[ProgressCallback],
    ) -> dict[int, NDArray[np.float32]]:
        """
        Embed all chunks of one note.

        Returns:
            Embeddings keyed by chunk index

        Raises:
            EmbeddingError: On the first failed embedding; pending calls are cancelled
        """
        embeddings: dict[int, NDArray[np.float32]] = {}
        total = len(chunks)

        async def embed_one(chunk: Chunk) -> None:
            async with embedding_slots:
                vector = await self._embedder.aembed(chunk.content)
            embeddings[chunk.index] = vector
            if callback is not None:
                callback(IngestionProgress(position, name, len(embeddings), total))

        tasks = [asyncio.create_task(embed_one(chunk)) for chunk in chunks]
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks:
            if task.done() and not task.cancelled() and task.exception() is not None:
                raise task.exception()

        return embeddings


@dataclass
class IngestionJob:
    """
    Handle for an ingestion batch running in the background.

    Example:
        >>> job = start_ingestion(pipeline, tenant_key, documents)
        >>> job.progress
        [IngestionProgress(position=0, document_name='notes.txt', embedded=3, total=5)]
        >>> results = await job.wait()
    """

    job_id: str
    task: "asyncio.Task[list[IngestionResult]]"
    progress: list[IngestionProgress] = field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.task.done()

    @property
    def results(self) -> Optional[list[IngestionResult]]:
        """Results once the batch finished successfully, else None."""
        if self.task.done() and not self.task.cancelled() and self.task.exception() is None:
            return self.task.result()
        return None

    @property
    def error(self) -> Optional[str]:
        if self.task.done() and not self.task.cancelled() and self.task.exception() is not None:
            return str(self.task.exception())
        return None

    async def wait(self) -> list[IngestionResult]:
        return await self.task


def start_ingestion(
    pipeline: IngestionPipeline,
    tenant_key: str,
    documents: Sequence[SourceDocument],
    on_complete: Optional[Callable[[IngestionJob], None]] = None,
) -> IngestionJob:
    """
    Start ingesting a batch without waiting for it.

    Must be called from a running event loop.

    Args:
        pipeline: Pipeline to run
        tenant_key: Partition the notes belong to
        documents: Notes to ingest
        on_complete: Called with the job once the batch finishes

    Returns:
        IngestionJob tracking progress and results
    """
    progress = [
        IngestionProgress(i, doc.name or "Untitled.txt", 0, 0)
        for i, doc in enumerate(documents)
    ]

    def record(update: IngestionProgress) -> None:
        progress[update.position] = update

    task = asyncio.create_task(pipeline.ingest(tenant_key, documents, progress_callback=record))
    job = IngestionJob(job_id=uuid.uuid4().hex, task=task, progress=progress)

    if on_complete is not None:
        task.add_done_callback(lambda _: on_complete(job))

    return job
