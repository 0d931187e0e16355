"""Abstract base class for the knowledge chunk repository.

The storage engine itself is outside lexbrief's concern; services only see
this contract.  Every implementation must enforce the same update rules,
shared through :func:`apply_chunk_update`:

* only ``title``, ``content``, ``category``, ``tags`` and the embedding
  fields (``embedding``, ``embedded_chars``, ``embedding_truncated``) are
  updatable; system fields raise ``ValueError``;
* chunks with ``document_type == UPLOADED_PDF`` reject any change to
  ``content``, ``title``, ``tags`` or the embedding fields with
  :class:`~lexbrief.utils.errors.ImmutableChunkError`.  Writing back an
  unchanged value is not a change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from lexbrief.models.knowledge import ChunkFilter, DocumentType, KnowledgeChunk, dedupe_tags
from lexbrief.utils.errors import ImmutableChunkError

UPDATABLE_FIELDS = frozenset(
    {"title", "content", "category", "tags", "embedding", "embedded_chars", "embedding_truncated"}
)

# Fields frozen for chunks that came from an uploaded PDF.
PDF_LOCKED_FIELDS = (
    "content",
    "title",
    "tags",
    "embedding",
    "embedded_chars",
    "embedding_truncated",
)


def apply_chunk_update(
    chunk: KnowledgeChunk,
    fields: dict[str, Any],
    provider_name: str | None = None,
) -> KnowledgeChunk:
    """Return a copy of *chunk* with *fields* applied under the update rules.

    Raises
    ------
    ValueError
        If *fields* names a field that is not updatable.
    ImmutableChunkError
        If *chunk* is PDF-origin and *fields* changes a locked field.
    """
    unknown = sorted(set(fields) - UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Fields not updatable: {', '.join(unknown)}")

    update = dict(fields)
    if "tags" in update:
        update["tags"] = dedupe_tags(update["tags"])

    if chunk.document_type == DocumentType.UPLOADED_PDF:
        changed = [
            name
            for name in PDF_LOCKED_FIELDS
            if name in update and update[name] != getattr(chunk, name)
        ]
        if changed:
            raise ImmutableChunkError(chunk.id, changed, provider_name=provider_name)

    update["updated_at"] = datetime.now(timezone.utc)
    return chunk.model_copy(update=update)


# Concrete implementations: InMemoryDocumentStore, SQLiteDocumentStore
# Located in: lexbrief/providers/document_store/
class IDocumentStore(ABC):
    """Contract for persisting and retrieving :class:`KnowledgeChunk` records."""

    @abstractmethod
    async def insert(self, chunk: KnowledgeChunk) -> str:
        """Persist *chunk* and return its id."""

    @abstractmethod
    async def get(self, chunk_id: str) -> KnowledgeChunk | None:
        """Return the chunk with *chunk_id*, or ``None`` if absent."""

    @abstractmethod
    async def list_all(self, filters: ChunkFilter | None = None) -> list[KnowledgeChunk]:
        """Return chunks matching *filters* in insertion order."""

    @abstractmethod
    async def update(self, chunk_id: str, fields: dict[str, Any]) -> KnowledgeChunk | None:
        """Apply a partial update; return the updated chunk or ``None`` if absent.

        Raises
        ------
        ValueError
            If *fields* names a non-updatable field.
        lexbrief.utils.errors.ImmutableChunkError
            If the chunk is PDF-origin and a locked field would change.
        """

    @abstractmethod
    async def delete(self, chunk_id: str) -> bool:
        """Delete the chunk; return ``True`` if it existed."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
