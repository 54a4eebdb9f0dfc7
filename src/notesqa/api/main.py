"""
FastAPI application for the notes question-answering API.

Run with:
    uvicorn notesqa.api.main:app --reload

Or use the CLI:
    notesqa serve
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from notesqa import __version__
from notesqa.api.models import (
    AskRequest,
    AskResponse,
    DocumentProgress,
    ErrorResponse,
    HealthResponse,
    IngestFileResult,
    IngestJobResponse,
    IngestRequest,
    IngestResponse,
    SourceSchema,
)
from notesqa.graph.workflow import AnswerError
from notesqa.retrieval.ingestion import IngestionJob, IngestionResult
from notesqa.retrieval.resources import (
    get_note_store,
    get_notes_service,
    initialize_resources,
)
from notesqa.service import NotesService

logger = logging.getLogger(__name__)


def get_service() -> NotesService:
    """Dependency returning the shared NotesService."""
    return get_notes_service()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Load the note store from disk (cached)
        - Create the embedder and text generator clients (cached)

    Shutdown:
        - Persist the note store
    """
    logger.info("Initializing notesqa resources...")

    try:
        resource_status = initialize_resources()
        logger.info(f"Resource initialization status: {resource_status}")
    except Exception as e:
        logger.error(f"Failed to initialize resources: {e}")
        raise RuntimeError(f"Startup failed: {e}") from e

    yield

    logger.info("Shutting down notesqa...")
    get_note_store().flush()


def create_app(load_resources: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        load_resources: Initialize cached resources on startup

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Notes QA",
        description="Question answering over personal notes with citations",
        version=__version__,
        lifespan=lifespan if load_resources else None,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    return app


router = APIRouter()


def _file_result(result: IngestionResult) -> IngestFileResult:
    return IngestFileResult(
        name=result.name,
        status=result.status,
        chunk_count=result.chunk_count,
        reason=result.reason,
        document_id=result.document_id,
    )


def _job_response(job: IngestionJob) -> IngestJobResponse:
    if not job.done:
        job_status = "running"
    elif job.results is not None:
        job_status = "completed"
    else:
        job_status = "failed"

    results = job.results
    error = job.error
    if job_status == "failed" and error is None:
        error = "Job was cancelled"

    return IngestJobResponse(
        job_id=job.job_id,
        status=job_status,
        progress=[
            DocumentProgress(
                position=p.position,
                name=p.document_name,
                embedded=p.embedded,
                total=p.total,
            )
            for p in job.progress
        ],
        results=[_file_result(r) for r in results] if results is not None else None,
        error=error,
    )


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(service: NotesService = Depends(get_service)) -> HealthResponse:
    """Health check with basic store statistics."""
    store = service.store
    notes = getattr(store, "document_count", 0)
    chunks = getattr(store, "chunk_count", 0)

    return HealthResponse(status="healthy", version=__version__, notes=notes, chunks=chunks)


@router.post(
    "/ingest",
    response_model=IngestResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid request"}},
    tags=["Ingestion"],
)
async def ingest_endpoint(
    request: IngestRequest,
    service: NotesService = Depends(get_service),
) -> IngestResponse:
    """
    Ingest uploaded notes and wait for the result.

    Each file is reported separately, so callers can retry only the
    files that failed.
    """
    try:
        results = await service.ingest(
            request.tenant_seed, [f.model_dump() for f in request.files]
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "message": str(e)},
        )

    return IngestResponse(results=[_file_result(r) for r in results])


@router.post(
    "/ingest/jobs",
    response_model=IngestJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={400: {"model": ErrorResponse, "description": "Invalid request"}},
    tags=["Ingestion"],
)
async def start_ingest_job(
    request: IngestRequest,
    service: NotesService = Depends(get_service),
) -> IngestJobResponse:
    """Start ingesting in the background; poll the returned job for progress."""
    try:
        job = service.start_ingestion(
            request.tenant_seed, [f.model_dump() for f in request.files]
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "message": str(e)},
        )

    return _job_response(job)


@router.get(
    "/ingest/jobs/{job_id}",
    response_model=IngestJobResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown job"}},
    tags=["Ingestion"],
)
async def get_ingest_job(
    job_id: str,
    service: NotesService = Depends(get_service),
) -> IngestJobResponse:
    """Report progress, and results once finished, of an ingestion job."""
    job = service.get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "job_not_found", "message": f"No ingestion job {job_id}"},
        )
    return _job_response(job)


@router.post(
    "/ask",
    response_model=AskResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        502: {"model": ErrorResponse, "description": "Embedding, retrieval or generation failed"},
        500: {"model": ErrorResponse, "description": "Internal error"},
    },
    tags=["Query"],
)
async def ask_endpoint(
    request: AskRequest,
    service: NotesService = Depends(get_service),
) -> AskResponse:
    """
    Answer a question from the caller's notes.

    The answer and its sources are returned together or not at all.
    """
    try:
        result = await service.ask(request.tenant_seed, request.question, request.match_count)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "message": str(e)},
        )
    except AnswerError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "answer_failed", "message": e.reason},
        )
    except Exception as e:
        logger.exception("Unexpected error while answering")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "internal_error", "message": str(e)},
        )

    return AskResponse(
        answer=result.answer,
        sources=[
            SourceSchema(note_id=s.document_id, title=s.title, snippet=s.snippet)
            for s in result.sources
        ],
    )


# Create app instance
app = create_app()
