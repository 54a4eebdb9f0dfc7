"""
Pydantic models for API request and response schemas.

These models provide automatic validation and OpenAPI documentation.
Fields are camelCase on the wire (``tenantSeed``, ``chunkCount``,
``noteId``); snake_case names are accepted on input as well.
"""

from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadedFile(ApiModel):
    """A note file already converted to text by the uploader."""

    name: str = Field(
        default="Untitled.txt",
        description="Original file name, used as the note title",
    )
    type: str = Field(
        default="text/plain",
        description="Content type reported by the uploader",
    )
    content: str = Field(
        default="",
        description="Decoded note text",
    )


class IngestRequest(ApiModel):
    """Request schema for the /ingest endpoints."""

    tenant_seed: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("tenantSeed", "tenant_seed", "clientId"),
        description="Client identifier the tenant key is derived from",
    )
    files: list[UploadedFile] = Field(
        ...,
        min_length=1,
        description="Files to ingest",
    )


class IngestFileResult(ApiModel):
    """Outcome for one uploaded file."""

    name: str
    status: Literal["processed", "skipped", "error"]
    chunk_count: Optional[int] = None
    reason: Optional[str] = None
    document_id: Optional[str] = None


class IngestResponse(ApiModel):
    """Response schema for the /ingest endpoint."""

    results: list[IngestFileResult] = Field(
        default_factory=list,
        description="One result per uploaded file, in upload order",
    )


class DocumentProgress(ApiModel):
    """Embedding progress of one file, by upload position."""

    position: int
    name: str
    embedded: int
    total: int


class IngestJobResponse(ApiModel):
    """Response schema for the /ingest/jobs endpoints."""

    job_id: str
    status: Literal["running", "completed", "failed"]
    progress: list[DocumentProgress] = Field(
        default_factory=list,
        description="One entry per uploaded file, in upload order",
    )
    results: Optional[list[IngestFileResult]] = None
    error: Optional[str] = None


class AskRequest(ApiModel):
    """Request schema for the /ask endpoint."""

    tenant_seed: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("tenantSeed", "tenant_seed", "clientId"),
        description="Client identifier the tenant key is derived from",
    )
    question: str = Field(
        ...,
        min_length=1,
        max_length=4000,
        description="Natural language question about the user's notes",
        examples=["When is my dentist appointment?"],
    )
    match_count: Optional[int] = Field(
        default=None,
        ge=1,
        le=100,
        validation_alias=AliasChoices("matchCount", "match_count"),
        description="Number of chunks to retrieve",
    )


class SourceSchema(ApiModel):
    """Schema for a cited note."""

    note_id: str = Field(description="Id of the cited note")
    title: str = Field(description="Title of the cited note")
    snippet: str = Field(default="", description="Leading text of the best-matching chunk")


class AskResponse(ApiModel):
    """Response schema for the /ask endpoint."""

    answer: str = Field(description="Generated answer with inline citations")
    sources: list[SourceSchema] = Field(
        default_factory=list,
        description="Notes the answer was grounded on",
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "answer": "Your dentist appointment is on Tuesday at 9am. (See: calendar.txt)",
                    "sources": [
                        {
                            "noteId": "6f1c2a5e-0c55-4c1e-9f0e-7d0b8c3a2b11",
                            "title": "calendar.txt",
                            "snippet": "Tuesday 9am dentist, bring insurance card...",
                        }
                    ],
                }
            ]
        },
    )


class HealthResponse(BaseModel):
    """Response schema for the /health endpoint."""

    status: str = Field(
        description="Health status",
        examples=["healthy"],
    )
    version: str = Field(
        description="API version",
    )
    notes: int = Field(
        description="Number of stored notes",
    )
    chunks: int = Field(
        description="Number of stored chunks",
    )


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error: str = Field(
        description="Error code",
        examples=["invalid_request", "answer_failed", "job_not_found", "internal_error"],
    )
    message: str = Field(
        description="Human-readable error message",
    )
