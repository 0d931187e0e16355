"""Custom exception hierarchy for lexbrief.

All application exceptions inherit from :class:`LexBriefError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai_embedding", "sqlite_document_store") caused
the failure.

The hierarchy is organized by pipeline stage:

    LexBriefError  (base -- catch-all for any lexbrief error)
    +-- ExtractionError          (uploaded bytes -> usable text)
    +-- EmbeddingError           (embedding provider failure, with a cause)
    +-- DimensionMismatchError   (strict similarity on unequal vectors)
    +-- DocumentStoreError       (repository read/write failure)
    +-- ImmutableChunkError      (edit of a PDF-origin chunk)
    +-- IngestionError           (upload rejected or produced no chunks)
    +-- LLMError                 (summary generation failure)
    +-- ConfigurationError       (startup / missing config)

Size and token overflow is never an error: the embedding gateway truncates
instead.  Only the ingestion path raises; query-time composition degrades.
"""

from __future__ import annotations

from enum import Enum


class LexBriefError(Exception):
    """Base exception for all lexbrief errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion-path errors
# ---------------------------------------------------------------------------


class ExtractionError(LexBriefError):
    """Raised when uploaded bytes cannot be turned into usable text.

    Both the structured parser and the byte-level fallback failed, or the
    recovered text is below the minimum usable length.
    """

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionError(LexBriefError):
    """Raised when an upload is rejected or yields no storable chunks."""

    def __init__(
        self,
        message: str = "Document ingestion failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingFailureCause(str, Enum):
    """Why an embedding call failed, reclassified from the provider response."""

    RATE_LIMITED = "RATE_LIMITED"
    AUTH_FAILED = "AUTH_FAILED"
    BAD_REQUEST = "BAD_REQUEST"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_status_code(cls, status_code: int | None) -> EmbeddingFailureCause:
        """Map a provider HTTP status code onto the failure taxonomy."""
        if status_code is None:
            return cls.UNKNOWN
        if status_code == 429:
            return cls.RATE_LIMITED
        if status_code in (401, 403):
            return cls.AUTH_FAILED
        if status_code in (408, 504):
            return cls.TIMEOUT
        if status_code in (400, 404, 413, 422):
            return cls.BAD_REQUEST
        return cls.UNKNOWN


# Causes worth retrying with backoff; the rest need a config or input fix.
_RETRYABLE_CAUSES = frozenset(
    {
        EmbeddingFailureCause.RATE_LIMITED,
        EmbeddingFailureCause.TIMEOUT,
        EmbeddingFailureCause.NETWORK_ERROR,
    }
)


class EmbeddingError(LexBriefError):
    """Raised when the embedding provider call fails on the ingestion path.

    The ``cause`` lets the surrounding application decide on retry: retry
    on RATE_LIMITED / TIMEOUT / NETWORK_ERROR, do not retry on
    AUTH_FAILED / BAD_REQUEST.
    """

    def __init__(
        self,
        message: str = "Embedding generation failed",
        cause: EmbeddingFailureCause = EmbeddingFailureCause.UNKNOWN,
        provider_name: str | None = None,
    ) -> None:
        self._cause = cause
        super().__init__(message=message, provider_name=provider_name)

    @property
    def cause(self) -> EmbeddingFailureCause:
        return self._cause

    @property
    def retryable(self) -> bool:
        return self._cause in _RETRYABLE_CAUSES


# ---------------------------------------------------------------------------
# Retrieval errors
# ---------------------------------------------------------------------------


class DimensionMismatchError(LexBriefError):
    """Raised by strict similarity when two vectors differ in length."""

    def __init__(
        self,
        expected: int,
        actual: int,
        provider_name: str | None = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            message=f"Vector dimension mismatch: expected {expected}, got {actual}",
            provider_name=provider_name,
        )


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------


class DocumentStoreError(LexBriefError):
    """Raised when the document repository cannot complete an operation."""

    def __init__(
        self,
        message: str = "Document store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ImmutableChunkError(DocumentStoreError):
    """Raised when an update touches content, title or tags of a PDF chunk.

    PDF-origin chunks are re-ingested by delete + re-upload, never edited.
    """

    def __init__(
        self,
        chunk_id: str,
        fields: list[str],
        provider_name: str | None = None,
    ) -> None:
        self.chunk_id = chunk_id
        self.fields = fields
        super().__init__(
            message=(
                f"Chunk {chunk_id} originates from an uploaded PDF; "
                f"fields {', '.join(fields)} cannot be changed"
            ),
            provider_name=provider_name,
        )


# ---------------------------------------------------------------------------
# LLM / configuration errors
# ---------------------------------------------------------------------------


class LLMError(LexBriefError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(LexBriefError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
