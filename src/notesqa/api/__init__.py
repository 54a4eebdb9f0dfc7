"""
FastAPI REST API for notesqa.

Endpoints:
    POST /ingest - Ingest uploaded notes and wait for the per-file results
    POST /ingest/jobs - Start ingesting in the background
    GET /ingest/jobs/{job_id} - Progress and results of a background ingestion
    POST /ask - Answer a question from the caller's notes
    GET /health - Health check
"""

from notesqa.api.main import app, create_app

__all__ = ["app", "create_app"]
