"""In-memory document store.

Holds chunks and briefs in insertion-ordered dicts.  Used by the test suite
and by ``DOCUMENT_STORE_BACKEND=memory`` for throwaway sessions; nothing
survives the process.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from lexbrief.interfaces.brief_provider import IBriefProvider
from lexbrief.interfaces.document_store import IDocumentStore, apply_chunk_update
from lexbrief.models.knowledge import Brief, ChunkFilter, KnowledgeChunk
from lexbrief.utils.errors import DocumentStoreError

logger = structlog.get_logger(logger_name=__name__)


class InMemoryDocumentStore(IDocumentStore, IBriefProvider):
    """Dict-backed implementation of the chunk and brief repositories."""

    def __init__(self) -> None:
        self._chunks: dict[str, KnowledgeChunk] = {}
        self._briefs: dict[str, Brief] = {}
        self._lock = asyncio.Lock()

    # -- IDocumentStore --------------------------------------------------

    async def insert(self, chunk: KnowledgeChunk) -> str:
        async with self._lock:
            if chunk.id in self._chunks:
                raise DocumentStoreError(
                    f"Chunk {chunk.id} already exists",
                    provider_name=self.get_provider_name(),
                )
            self._chunks[chunk.id] = chunk
        logger.debug("chunk_inserted", chunk_id=chunk.id, document_type=chunk.document_type.value)
        return chunk.id

    async def get(self, chunk_id: str) -> KnowledgeChunk | None:
        return self._chunks.get(chunk_id)

    async def list_all(self, filters: ChunkFilter | None = None) -> list[KnowledgeChunk]:
        chunks = list(self._chunks.values())
        if filters is None:
            return chunks
        return [c for c in chunks if filters.matches(c)]

    async def update(self, chunk_id: str, fields: dict[str, Any]) -> KnowledgeChunk | None:
        async with self._lock:
            existing = self._chunks.get(chunk_id)
            if existing is None:
                return None
            updated = apply_chunk_update(existing, fields, provider_name=self.get_provider_name())
            self._chunks[chunk_id] = updated
        logger.debug("chunk_updated", chunk_id=chunk_id, fields=sorted(fields))
        return updated

    async def delete(self, chunk_id: str) -> bool:
        async with self._lock:
            removed = self._chunks.pop(chunk_id, None)
        return removed is not None

    # -- IBriefProvider --------------------------------------------------

    async def list_published_briefs(self) -> list[Brief]:
        return [b for b in self._briefs.values() if b.is_published]

    async def add_brief(self, brief: Brief) -> str:
        """Insert or replace a brief."""
        self._briefs[brief.id] = brief
        return brief.id

    def get_provider_name(self) -> str:
        return "memory_document_store"
