"""Exception hierarchy shared by ingestion, retrieval, QA and serving.

Every error carries the HTTP status it maps to and a public message that
is safe to send to callers.  The original exception message stays in the
server logs only.
"""

from __future__ import annotations


class DocQAError(Exception):
    """Base class for all service errors."""

    status_code: int = 500
    public_message: str = "Internal server error"


class DocumentLoadError(DocQAError):
    """A corpus file could not be parsed, or the corpus is missing."""


class EmbeddingError(DocQAError):
    """The embedding provider failed or returned malformed vectors."""


class IndexBuildError(DocQAError):
    """Building the vector index failed; the process cannot serve answers."""

    status_code = 503
    public_message = "Service not ready"


class IndexNotReadyError(DocQAError):
    """Raised on the request path when the index build has failed."""

    status_code = 503
    public_message = "Service not ready"


class RetrievalError(DocQAError):
    """Similarity search failed after retries."""

    status_code = 502
    public_message = "Upstream service error"


class ModelError(DocQAError):
    """The language model failed, timed out, or returned no usable text."""

    status_code = 502
    public_message = "Upstream service error"


class InvalidQuestionError(DocQAError):
    """The question is missing or blank."""

    status_code = 422
    public_message = "question must be a non-empty string"
