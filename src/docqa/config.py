"""Shared configuration loaded from environment / .env."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key used for embeddings and chat")
    llm_model_name: str = Field(default="gpt-4o-mini", description="Chat model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible chat endpoint. "
            "Leave empty to use OpenAI cloud."
        ),
    )
    temperature: float = Field(default=0.0, description="Sampling temperature; 0 keeps answers reproducible")

    # Embedding
    embedding_provider: str = Field(default="openai", description="One of: openai, huggingface, fake")
    embedding_model: str = "text-embedding-3-small"
    embedding_dimension: int = Field(default=256, description="Vector size for the offline 'fake' provider")
    embedding_batch_size: int = Field(default=256, gt=0)

    # Vector store
    vector_store: str = Field(default="memory", description="One of: memory, chroma")
    similarity_metric: str = Field(default="cosine", description="One of: cosine, dot, euclidean")
    chroma_host: str = ""
    chroma_port: int = 8000
    chroma_api_key: str = ""
    chroma_tenant: str = ""
    chroma_database: str = ""
    chroma_collection: str = "docqa"

    # Ingestion
    docs_dir: Path = Path("./docs")
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=75, ge=0)
    json_jq_schema: str = ".texts[]"
    jsonl_jq_schema: str = ".html"
    csv_content_column: str = "text"

    # Retrieval
    retrieval_k: int = Field(default=4, gt=0)
    retrieval_retries: int = Field(default=1, ge=0)
    retry_backoff: float = Field(default=0.5, ge=0.0)

    # External calls
    request_timeout: float = Field(default=60.0, gt=0, description="Seconds allowed per embedding / model call")
    max_concurrency: int = Field(default=8, gt=0, description="Concurrent embedding / model calls")

    # Serving
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_chunking(self) -> Settings:
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than chunk_size ({self.chunk_size})"
            )
        return self


# Singleton: import `settings` wherever needed.
settings = Settings()
