"""
Configuration management using Pydantic Settings.

All configuration is loaded from environment variables with sensible defaults.
Use a .env file for local development.

Environment Variables:
    OPENAI_API_KEY: API key for the embeddings and chat completion endpoints
    EMBEDDING_MODEL: Embedding model name sent with every embeddings request
    LLM_MODEL: Chat model used for answer generation
    CHUNK_MAX_CHARS: Maximum characters per chunk
    CHUNK_OVERLAP: Characters repeated at the start of the next chunk
    MATCH_LIMIT: Number of chunks retrieved per question
    CITATION_LIMIT: Number of distinct notes cited per answer
    STORE_PATH: Directory holding the persisted note store
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # API Keys
    # ==========================================================================
    openai_api_key: Optional[SecretStr] = Field(
        default=None,
        description="Bearer token for the embeddings and chat completion endpoints",
    )

    # ==========================================================================
    # Embedding Configuration
    # ==========================================================================
    embedding_api_url: str = Field(
        default="https://api.openai.com/v1/embeddings",
        description="Embeddings endpoint accepting {model, input}",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name (must keep a stable dimension)",
    )
    embedding_dimension: int = Field(
        default=1536,
        ge=1,
        description="Dimension of embedding vectors (must match model)",
    )
    embedding_timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for a single embeddings request in seconds",
    )
    embedding_max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per embeddings request when rate limited",
    )

    # ==========================================================================
    # LLM Configuration
    # ==========================================================================
    chat_completions_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="OpenAI-compatible chat completions endpoint",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model used to write answers",
    )
    llm_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Temperature for answer generation",
    )
    llm_max_tokens: int = Field(
        default=1024,
        ge=1,
        le=8192,
        description="Maximum tokens for an answer",
    )
    llm_timeout: float = Field(
        default=120.0,
        gt=0,
        description="HTTP timeout for a chat completion request in seconds",
    )
    llm_max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per chat completion on 502/503/504 or network errors",
    )

    # ==========================================================================
    # Chunking Configuration
    # ==========================================================================
    chunk_max_chars: int = Field(
        default=1000,
        ge=1,
        description="Maximum characters per chunk",
    )
    chunk_overlap: int = Field(
        default=200,
        ge=0,
        description="Trailing characters repeated at the start of the next chunk",
    )

    # ==========================================================================
    # Retrieval Configuration
    # ==========================================================================
    match_limit: int = Field(
        default=8,
        ge=1,
        le=100,
        description="Number of chunks retrieved per question",
    )
    citation_limit: int = Field(
        default=8,
        ge=1,
        le=100,
        description="Maximum number of distinct notes cited per answer",
    )
    snippet_length: int = Field(
        default=180,
        ge=1,
        description="Characters of chunk content shown in a citation",
    )
    max_context_chars: int = Field(
        default=12000,
        ge=100,
        description="Upper bound on the context section of the answer prompt",
    )

    # ==========================================================================
    # Ingestion Configuration
    # ==========================================================================
    ingest_max_concurrent_documents: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Documents ingested in parallel within one request",
    )
    ingest_max_concurrent_embeddings: int = Field(
        default=8,
        ge=1,
        le=128,
        description="Embedding calls in flight at once within one request",
    )
    ingest_max_finished_jobs: int = Field(
        default=100,
        ge=1,
        description="Finished background jobs kept for polling; older ones are dropped",
    )

    # ==========================================================================
    # Storage Configuration
    # ==========================================================================
    store_path: Path = Field(
        default=Path("data/store"),
        description="Directory for the persisted note store",
    )

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = Field(
        default="0.0.0.0",
        description="Host to bind API server",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for API server",
    )

    # ==========================================================================
    # Observability Configuration
    # ==========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================
    @field_validator("chunk_overlap")
    @classmethod
    def validate_chunk_overlap(cls, v: int, info) -> int:
        """Ensure overlap is less than the chunk size."""
        max_chars = info.data.get("chunk_max_chars", 1000)
        if v >= max_chars:
            raise ValueError(f"chunk_overlap ({v}) must be less than chunk_max_chars ({max_chars})")
        return v

    @field_validator("store_path")
    @classmethod
    def resolve_path(cls, v: Path) -> Path:
        """Resolve paths to absolute paths."""
        return v.resolve()

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def openai_api_key_value(self) -> Optional[str]:
        """Get the actual API key value (use sparingly)."""
        if self.openai_api_key:
            return self.openai_api_key.get_secret_value()
        return None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Call `get_settings.cache_clear()` to reload settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Convenience alias
settings = get_settings()
