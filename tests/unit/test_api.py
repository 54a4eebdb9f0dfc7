"""Unit tests for the FastAPI endpoints."""

import time

import pytest
from fastapi.testclient import TestClient

from notesqa import __version__
from notesqa.api.main import create_app, get_service
from notesqa.graph.workflow import AnswerError


@pytest.fixture
def client(service):
    app = create_app(load_resources=False)
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client


def _wait_for_job(client, job_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/ingest/jobs/{job_id}").json()
        if body["status"] != "running" or time.monotonic() > deadline:
            return body
        time.sleep(0.01)


@pytest.mark.unit
class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "version": __version__,
            "notes": 0,
            "chunks": 0,
        }


@pytest.mark.unit
class TestIngest:
    """Tests for POST /ingest."""

    def test_ingest_reports_each_file(self, client, sample_notes):
        files = sample_notes + [{"name": "empty.txt", "type": "text/plain", "content": ""}]

        response = client.post("/ingest", json={"clientId": "device-1", "files": files})

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["name"] for r in results] == ["groceries.txt", "calendar.md", "empty.txt"]
        assert [r["status"] for r in results] == ["processed", "processed", "skipped"]
        assert results[2]["reason"] == "Empty content"
        assert results[0]["chunkCount"] >= 1
        assert results[0]["documentId"]
        assert client.get("/health").json()["notes"] == 2

    def test_file_defaults(self, client):
        response = client.post("/ingest", json={"tenant_seed": "device-1", "files": [{"content": "hi"}]})

        assert response.json()["results"][0]["name"] == "Untitled.txt"

    def test_camel_case_request_and_response(self, client):
        response = client.post(
            "/ingest",
            json={"tenantSeed": "device-1", "files": [{"name": "a.txt", "content": "Buy milk"}]},
        )

        assert response.status_code == 200
        result = response.json()["results"][0]
        assert result["chunkCount"] == 1
        assert "chunk_count" not in result
        assert "document_id" not in result

    def test_missing_client_id(self, client):
        response = client.post("/ingest", json={"files": [{"content": "hi"}]})

        assert response.status_code == 422

    def test_no_files(self, client):
        response = client.post("/ingest", json={"clientId": "device-1", "files": []})

        assert response.status_code == 422


@pytest.mark.unit
class TestIngestJobs:
    """Tests for the background ingestion endpoints."""

    def test_job_completes(self, client, sample_notes):
        response = client.post("/ingest/jobs", json={"clientId": "device-1", "files": sample_notes})

        assert response.status_code == 202
        job_id = response.json()["jobId"]

        body = _wait_for_job(client, job_id)

        assert body["status"] == "completed"
        assert [r["status"] for r in body["results"]] == ["processed", "processed"]
        assert [p["name"] for p in body["progress"]] == ["groceries.txt", "calendar.md"]
        assert [p["position"] for p in body["progress"]] == [0, 1]
        assert all(p["embedded"] == p["total"] for p in body["progress"])
        assert body["error"] is None

    def test_job_progress_for_duplicate_names(self, client):
        files = [
            {"name": "notes.txt", "content": "x" * 80},
            {"name": "notes.txt", "content": "y" * 16},
        ]

        response = client.post("/ingest/jobs", json={"clientId": "device-1", "files": files})
        body = _wait_for_job(client, response.json()["jobId"])

        assert body["status"] == "completed"
        assert len(body["progress"]) == 2
        assert [p["name"] for p in body["progress"]] == ["notes.txt", "notes.txt"]
        assert body["progress"][0]["total"] > body["progress"][1]["total"]

    def test_unknown_job(self, client):
        response = client.get("/ingest/jobs/does-not-exist")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "job_not_found"


@pytest.mark.unit
class TestAsk:
    """Tests for POST /ask."""

    def test_ask_returns_answer_and_sources(self, client, fake_llm):
        client.post(
            "/ingest",
            json={"clientId": "device-1", "files": [{"name": "groceries.txt", "content": "Buy milk"}]},
        )

        response = client.post("/ask", json={"clientId": "device-1", "question": "Buy milk"})

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == fake_llm.answer
        assert len(body["sources"]) == 1
        assert body["sources"][0]["title"] == "groceries.txt"
        assert body["sources"][0]["snippet"] == "Buy milk"
        assert body["sources"][0]["noteId"]
        assert "note_id" not in body["sources"][0]

    def test_ask_accepts_camel_case_fields(self, client):
        client.post(
            "/ingest",
            json={"tenantSeed": "device-1", "files": [{"name": "groceries.txt", "content": "Buy milk"}]},
        )

        response = client.post(
            "/ask", json={"tenantSeed": "device-1", "question": "Buy milk", "matchCount": 1}
        )

        assert response.status_code == 200
        assert [s["title"] for s in response.json()["sources"]] == ["groceries.txt"]
        assert response.json()["sources"][0]["noteId"]

    def test_ask_without_notes(self, client):
        response = client.post("/ask", json={"clientId": "nobody", "question": "Anything?"})

        assert response.status_code == 200
        assert response.json()["sources"] == []

    def test_empty_question_rejected(self, client):
        response = client.post("/ask", json={"clientId": "device-1", "question": ""})

        assert response.status_code == 422

    def test_blank_question_is_bad_request(self, client):
        response = client.post("/ask", json={"clientId": "device-1", "question": "   "})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_request"

    def test_match_count_bounds(self, client):
        response = client.post("/ask", json={"clientId": "d", "question": "q", "matchCount": 0})

        assert response.status_code == 422

    def test_answer_failure_is_bad_gateway(self, client, service, monkeypatch):
        async def failing_answer(*args, **kwargs):
            raise AnswerError("Chat endpoint returned 503")

        monkeypatch.setattr(service.orchestrator, "answer", failing_answer)

        response = client.post("/ask", json={"clientId": "device-1", "question": "q"})

        assert response.status_code == 502
        assert response.json()["detail"] == {
            "error": "answer_failed",
            "message": "Chat endpoint returned 503",
        }

    def test_unexpected_error_is_internal(self, client, service, monkeypatch):
        async def broken_answer(*args, **kwargs):
            raise RuntimeError("unexpected")

        monkeypatch.setattr(service.orchestrator, "answer", broken_answer)

        response = client.post("/ask", json={"clientId": "device-1", "question": "q"})

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "internal_error"
