"""Data models for the lexbrief knowledge base.

Defines Pydantic v2 models for stored knowledge chunks, static core
knowledge, published briefs, extraction output, embedding results and
ingestion summaries.  All models are frozen; updates go through
``model_copy(update=...)`` so a stored chunk is never mutated in place.

Retrieval overview:

    1. INGESTION: uploaded documents (PDF, DOCX, plain text) and manual
       entries are extracted, segmented and stored as ``KnowledgeChunk``.
    2. EMBEDDING: every chunk's text (capped by the embedding gateway) is
       turned into a vector recorded on the chunk.
    3. COMPOSITION: at query time the query vector is compared with stored
       chunks and published briefs; the top matches are concatenated with
       rule-selected ``CoreKnowledgeEntry`` text.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def dedupe_tags(tags: list[str] | tuple[str, ...] | None) -> list[str]:
    """Strip, drop blanks and deduplicate *tags*, preserving first-seen order."""
    seen: list[str] = []
    for tag in tags or []:
        cleaned = str(tag).strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class DocumentType(str, Enum):
    """Provenance of a stored chunk; decides editability and display label."""

    UPLOADED_PDF = "UPLOADED_PDF"
    UPLOADED_TEXT = "UPLOADED_TEXT"
    MANUAL = "MANUAL"


class UserRole(str, Enum):
    """Role of the caller asking a question."""

    BUYER = "BUYER"
    LAWYER = "LAWYER"
    ACCOUNTANT = "ACCOUNTANT"
    EXISTING_OWNER = "EXISTING_OWNER"

    @classmethod
    def parse(cls, value: UserRole | str | None) -> UserRole | None:
        """Coerce *value* to a role, returning ``None`` for unknown roles."""
        if value is None or isinstance(value, UserRole):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class ChunkingStrategy(str, Enum):
    """How an extracted document is turned into stored segments."""

    CHUNK = "chunk"
    SUMMARIZE = "summarize"
    SECTION = "section"
    HYBRID = "hybrid"


# ---------------------------------------------------------------------------
# KnowledgeChunk -- the fundamental unit of the document store.
# ---------------------------------------------------------------------------


class KnowledgeChunk(BaseModel):
    """A stored unit of retrievable text plus its embedding and provenance.

    ``content`` always holds the full normalized text.  Only the text sent
    to the embedding provider is capped, so for very large chunks the
    embedding covers a prefix of the content; ``embedded_chars`` and
    ``embedding_truncated`` record exactly how much.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id, description="Unique stable identifier (UUID4).")
    title: str = Field(description="Human-readable label shown in composed context.")
    content: str = Field(description="Full normalized text of the chunk.")
    category: str = Field(default="general", description="Free-form category.")
    tags: list[str] = Field(default_factory=list, description="Free-form labels.")
    document_type: DocumentType = Field(description="Where the chunk came from.")
    embedding: list[float] | None = Field(
        default=None,
        description="Embedding vector; None only when the caller tolerated an embedding failure.",
    )
    embedded_chars: int = Field(
        default=0, ge=0, description="Length of the text actually sent to the embedding provider."
    )
    embedding_truncated: bool = Field(
        default=False, description="True when the gateway capped the embedded text."
    )
    source_file: str | None = Field(default=None, description="Uploaded file name, if any.")
    source_size: int | None = Field(default=None, ge=0, description="Uploaded file size in bytes.")
    owner_id: str | None = Field(default=None, description="Creator / uploader identifier.")
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: list[str] | None) -> list[str]:
        return dedupe_tags(value)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class CoreKnowledgeEntry(BaseModel):
    """Static, curated knowledge selected by rules rather than by vectors."""

    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    content: str
    category: str
    tags: list[str] = Field(default_factory=list)


class Brief(BaseModel):
    """A hand-curated legal brief; only published briefs take part in retrieval."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    title: str
    slug: str = ""
    content: str
    is_published: bool = True
    created_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Pipeline intermediates
# ---------------------------------------------------------------------------


class ExtractedDocument(BaseModel):
    """Normalized text recovered from an uploaded file."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Detected document title.")
    text: str = Field(description="Normalized text.")
    page_count: int = Field(default=1, ge=0)
    word_count: int = Field(default=0, ge=0)
    method: str = Field(
        default="structured",
        description='"structured" for a real parser, "fallback" for the byte heuristic.',
    )
    document_type: DocumentType = DocumentType.UPLOADED_TEXT


class Section(BaseModel):
    """A heading-delimited slice of a document."""

    model_config = ConfigDict(frozen=True)

    heading: str
    content: str


class Segment(BaseModel):
    """A labelled piece of text about to become one stored chunk."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(description='Title suffix, e.g. "Part 2", "Summary" or a section heading.')
    text: str
    kind: str = Field(default="chunk", description='"chunk", "summary" or "section".')
    heading: str | None = Field(default=None, description="Source section heading, if any.")


class EmbeddingResult(BaseModel):
    """Vector returned by the embedding gateway plus its truncation record."""

    model_config = ConfigDict(frozen=True)

    vector: list[float]
    truncated: bool = False
    original_chars: int = Field(default=0, ge=0)
    embedded_chars: int = Field(default=0, ge=0)
    estimated_tokens: int = Field(default=0, ge=0)


class ScoredCandidate(BaseModel):
    """A candidate id with its similarity to the query."""

    model_config = ConfigDict(frozen=True)

    id: str
    similarity: float


class ChunkFilter(BaseModel):
    """Optional filters for listing stored chunks."""

    model_config = ConfigDict(frozen=True)

    document_type: DocumentType | None = None
    category: str | None = None
    tag: str | None = None
    owner_id: str | None = None
    has_embedding: bool | None = None

    def matches(self, chunk: KnowledgeChunk) -> bool:
        if self.document_type is not None and chunk.document_type != self.document_type:
            return False
        if self.category is not None and chunk.category != self.category:
            return False
        if self.tag is not None and self.tag not in chunk.tags:
            return False
        if self.owner_id is not None and chunk.owner_id != self.owner_id:
            return False
        if self.has_embedding is not None and chunk.has_embedding != self.has_embedding:
            return False
        return True


# ---------------------------------------------------------------------------
# Ingestion results
# ---------------------------------------------------------------------------


class ChunkSummary(BaseModel):
    """Compact description of one stored chunk, returned to the uploader."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    document_type: DocumentType
    category: str
    tags: list[str] = Field(default_factory=list)
    content_chars: int = 0
    embedded_chars: int = 0
    truncated: bool = False

    @classmethod
    def from_chunk(cls, chunk: KnowledgeChunk) -> ChunkSummary:
        return cls(
            id=chunk.id,
            title=chunk.title,
            document_type=chunk.document_type,
            category=chunk.category,
            tags=list(chunk.tags),
            content_chars=len(chunk.content),
            embedded_chars=chunk.embedded_chars,
            truncated=chunk.embedding_truncated,
        )


class IngestionResult(BaseModel):
    """Result of ingesting one uploaded document."""

    model_config = ConfigDict(frozen=True)

    document_title: str
    source_file: str
    strategy: ChunkingStrategy
    extraction_method: str = "structured"
    chunks: list[ChunkSummary] = Field(default_factory=list)
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")

    @property
    def chunks_created(self) -> int:
        return len(self.chunks)

    @property
    def truncated_chunks(self) -> int:
        return sum(1 for c in self.chunks if c.truncated)


class ImportedKnowledge(BaseModel):
    """A hand-authored knowledge item parsed from a JSON or CSV import."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    content: str = ""
    category: str = "general"
    tags: list[str] = Field(default_factory=list)
    source: str | None = None
