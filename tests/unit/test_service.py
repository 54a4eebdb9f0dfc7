"""Unit tests for service module."""

import asyncio

import pytest

from notesqa.retrieval.ingestion import SourceDocument
from notesqa.service import NotesService, to_source_document
from notesqa.tenant import derive_tenant_key


@pytest.mark.unit
class TestToSourceDocument:
    """Tests for to_source_document() function."""

    def test_maps_fields(self):
        document = to_source_document({"name": "a.md", "type": "text/markdown", "content": "hi"})

        assert document == SourceDocument(name="a.md", text="hi", mime_type="text/markdown")

    def test_defaults(self):
        assert to_source_document({}) == SourceDocument(
            name="Untitled.txt", text="", mime_type="text/plain"
        )


@pytest.mark.unit
class TestNotesService:
    """Tests for NotesService."""

    @pytest.mark.asyncio
    async def test_ingest_uses_derived_tenant_key(self, service, store, sample_notes):
        results = await service.ingest("device-1", sample_notes)

        assert [r.status for r in results] == ["processed", "processed"]
        tenant_key = derive_tenant_key("device-1")
        assert len(store.list_documents(tenant_key)) == 2
        assert store.list_documents("device-1") == []

    @pytest.mark.asyncio
    async def test_ingest_accepts_source_documents(self, service):
        results = await service.ingest("device-1", [SourceDocument("a.txt", "hello")])

        assert results[0].status == "processed"

    @pytest.mark.asyncio
    async def test_ingest_flushes_store(self, fake_embedder, fake_llm, tmp_path):
        from notesqa.retrieval.store import InMemoryNoteStore

        store = InMemoryNoteStore(tmp_path)
        service = NotesService(fake_embedder, store, fake_llm)

        await service.ingest("device-1", [{"name": "a.txt", "content": "hello"}])

        assert (tmp_path / "documents.json").exists()

    @pytest.mark.asyncio
    async def test_empty_seed_rejected(self, service):
        with pytest.raises(ValueError):
            await service.ingest("", [{"name": "a.txt", "content": "x"}])
        with pytest.raises(ValueError):
            await service.ask("", "question?")

    @pytest.mark.asyncio
    async def test_tenants_are_isolated(self, service, fake_llm):
        await service.ingest("device-1", [{"name": "mine.txt", "content": "my private note"}])
        await service.ingest("device-2", [{"name": "theirs.txt", "content": "their private note"}])

        result = await service.ask("device-1", "private note")

        assert [s.title for s in result.sources] == ["mine.txt"]
        assert "their private note" not in fake_llm.prompts[-1]

    @pytest.mark.asyncio
    async def test_background_job(self, service):
        job = service.start_ingestion("device-1", [{"name": "a.txt", "content": "hello there"}])

        assert service.get_job(job.job_id) is job
        results = await job.wait()

        assert results[0].status == "processed"
        assert service.get_job("unknown") is None

    def test_store_property(self, service, store):
        assert service.store is store

    @pytest.mark.asyncio
    async def test_finished_jobs_are_bounded(self, fake_embedder, store, fake_llm):
        service = NotesService(fake_embedder, store, fake_llm, max_finished_jobs=2)

        jobs = []
        for i in range(5):
            job = service.start_ingestion("device-1", [{"name": f"{i}.txt", "content": "hello"}])
            await job.wait()
            await asyncio.sleep(0)
            jobs.append(job)

        assert len(service._jobs) == 2
        assert [service.get_job(j.job_id) for j in jobs] == [None, None, None, jobs[3], jobs[4]]

    @pytest.mark.asyncio
    async def test_running_jobs_are_kept(self, fake_embedder, store, fake_llm):
        service = NotesService(fake_embedder, store, fake_llm, max_finished_jobs=1)

        running = service.start_ingestion("device-1", [{"name": "a.txt", "content": "hello"}])
        first = service.start_ingestion("device-1", [{"name": "b.txt", "content": "hi"}])

        assert service.get_job(running.job_id) is running
        assert service.get_job(first.job_id) is first
        await asyncio.gather(running.wait(), first.wait())

    def test_invalid_job_limit(self, fake_embedder, store, fake_llm):
        with pytest.raises(ValueError, match="max_finished_jobs"):
            NotesService(fake_embedder, store, fake_llm, max_finished_jobs=0)
