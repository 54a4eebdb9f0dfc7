"""
Entry points consumed by the API and the CLI.

Callers pass the client's tenant seed on every call; it is turned into a
tenant key here and never cached.
"""

import logging
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional

from notesqa.graph.workflow import AnswerOrchestrator, AnswerResult
from notesqa.llm.factory import LLMProtocol
from notesqa.retrieval.embeddings import EmbedderProtocol
from notesqa.retrieval.ingestion import (
    IngestionJob,
    IngestionPipeline,
    IngestionResult,
    SourceDocument,
    start_ingestion,
)
from notesqa.retrieval.store import NoteStore
from notesqa.tenant import derive_tenant_key

logger = logging.getLogger(__name__)


def to_source_document(file: Mapping[str, Any]) -> SourceDocument:
    """Convert an uploaded ``{name, type, content}`` mapping."""
    return SourceDocument(
        name=file.get("name") or "Untitled.txt",
        text=file.get("content") or "",
        mime_type=file.get("type") or "text/plain",
    )


class NotesService:
    """
    Ingests notes and answers questions for explicitly identified tenants.

    Example:
        >>> service = NotesService(embedder, store, llm)
        >>> await service.ingest("client-1", [{"name": "a.txt", "content": "hello"}])
        >>> result = await service.ask("client-1", "What did I write?")
    """

    def __init__(
        self,
        embedder: EmbedderProtocol,
        store: NoteStore,
        llm: LLMProtocol,
        *,
        pipeline: Optional[IngestionPipeline] = None,
        orchestrator: Optional[AnswerOrchestrator] = None,
        max_finished_jobs: int = 100,
    ) -> None:
        if max_finished_jobs < 1:
            raise ValueError("max_finished_jobs must be at least 1")
        self._store = store
        self.pipeline = pipeline or IngestionPipeline(embedder, store)
        self.orchestrator = orchestrator or AnswerOrchestrator(embedder, store, llm)
        self._jobs: dict[str, IngestionJob] = {}
        self._finished_jobs: deque[str] = deque()
        self.max_finished_jobs = max_finished_jobs

    @property
    def store(self) -> NoteStore:
        return self._store

    async def ingest(
        self,
        tenant_seed: str,
        files: Sequence[Mapping[str, Any] | SourceDocument],
    ) -> list[IngestionResult]:
        """
        Ingest uploaded files for a tenant and persist the store.

        Raises:
            ValueError: If tenant_seed is empty
        """
        tenant_key = derive_tenant_key(tenant_seed)
        documents = [
            f if isinstance(f, SourceDocument) else to_source_document(f) for f in files
        ]
        results = await self.pipeline.ingest(tenant_key, documents)
        self._store.flush()
        return results

    def start_ingestion(
        self,
        tenant_seed: str,
        files: Sequence[Mapping[str, Any] | SourceDocument],
        on_complete: Optional[Callable[[IngestionJob], None]] = None,
    ) -> IngestionJob:
        """
        Start ingesting in the background and return the job handle.

        The store is persisted when the job finishes. Only the most recent
        max_finished_jobs finished jobs stay available to get_job(). Must be
        called from a running event loop.
        """
        tenant_key = derive_tenant_key(tenant_seed)
        documents = [
            f if isinstance(f, SourceDocument) else to_source_document(f) for f in files
        ]

        def finished(job: IngestionJob) -> None:
            if job.error is not None:
                logger.error("Ingestion job %s failed: %s", job.job_id, job.error)
            else:
                self._store.flush()
            self._retire(job.job_id)
            if on_complete is not None:
                on_complete(job)

        job = start_ingestion(self.pipeline, tenant_key, documents, on_complete=finished)
        self._jobs[job.job_id] = job
        return job

    def _retire(self, job_id: str) -> None:
        self._finished_jobs.append(job_id)
        while len(self._finished_jobs) > self.max_finished_jobs:
            self._jobs.pop(self._finished_jobs.popleft(), None)

    def get_job(self, job_id: str) -> Optional[IngestionJob]:
        """Return a job started by this service, or None."""
        return self._jobs.get(job_id)

    async def ask(
        self,
        tenant_seed: str,
        question: str,
        match_count: Optional[int] = None,
    ) -> AnswerResult:
        """
        Answer a question from a tenant's notes.

        Raises:
            ValueError: If tenant_seed or question is empty
            AnswerError: If answering fails
        """
        tenant_key = derive_tenant_key(tenant_seed)
        return await self.orchestrator.answer(tenant_key, question, match_count)
