"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **extract -> segment -> embed -> store**.

:class:`IngestionService` coordinates its collaborators (text extractor,
chunker, summarizer, embedding gateway, document store) without any of them
knowing about each other.  An upload follows the same flow regardless of
format:

    1. TextExtractor -- bytes to normalized text plus a detected title
    2. DocumentSummarizer -- only for the ``summarize``/``hybrid`` strategies
    3. TextChunker -- labelled segments for the chosen strategy
    4. EmbeddingGateway -- one size-capped embedding per segment
    5. IDocumentStore -- one KnowledgeChunk per segment, in source order

Every segment is embedded before anything is stored, so an embedding
failure leaves the store untouched.  Manual entries, chunk edits and bulk
imports go through the same service so the update rules and re-embedding
live in one place.
"""

from __future__ import annotations

import re
import time
from pathlib import PurePath
from typing import TYPE_CHECKING, Any

import structlog

from lexbrief.models.knowledge import (
    ChunkFilter,
    ChunkingStrategy,
    ChunkSummary,
    DocumentType,
    EmbeddingResult,
    ImportedKnowledge,
    IngestionResult,
    KnowledgeChunk,
    Segment,
)
from lexbrief.services.ingestion.chunker import TextChunker
from lexbrief.services.ingestion.knowledge_import import validate_knowledge_items
from lexbrief.services.ingestion.summarizer import DocumentSummarizer
from lexbrief.services.ingestion.text_extractor import TextExtractor
from lexbrief.utils.errors import ConfigurationError, EmbeddingError, IngestionError

if TYPE_CHECKING:
    from lexbrief.interfaces.document_store import IDocumentStore
    from lexbrief.services.embedding_gateway import EmbeddingGateway

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MIN_SEGMENT_CHARS = 20
MIN_MANUAL_CONTENT_CHARS = 50
DEFAULT_CATEGORY = "legal-document"

_SLUG_STRIP = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACE = re.compile(r"\s+")


def slugify(text: str) -> str:
    """Lower-case, hyphenated tag form of a heading."""
    slug = _SLUG_STRIP.sub("", text.lower()).strip()
    return _SLUG_SPACE.sub("-", slug)


class IngestionService:
    """Orchestrates ingestion and maintenance of stored knowledge chunks.

    Parameters
    ----------
    store:
        Persists chunks.
    gateway:
        Embeds segment text.  ``None`` when no embedding provider is
        configured; uploads and manual entries are then refused, while bulk
        imports are stored without embeddings.
    extractor, chunker, summarizer:
        Pipeline stages; defaults are built when omitted.
    max_chunk_chars:
        Character budget per uniform segment.
    max_upload_bytes:
        Uploads larger than this are rejected.
    min_segment_chars:
        Segments shorter than this (after stripping) are dropped.
    concurrency:
        Maximum embedding calls in flight for one upload.
    """

    def __init__(
        self,
        store: IDocumentStore,
        gateway: EmbeddingGateway | None,
        extractor: TextExtractor | None = None,
        chunker: TextChunker | None = None,
        summarizer: DocumentSummarizer | None = None,
        max_chunk_chars: int = 5000,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        min_segment_chars: int = MIN_SEGMENT_CHARS,
        concurrency: int = 1,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._extractor = extractor or TextExtractor()
        self._chunker = chunker or TextChunker(max_chunk_chars=max_chunk_chars)
        self._summarizer = summarizer or DocumentSummarizer()
        self._max_chunk_chars = max_chunk_chars
        self._max_upload_bytes = max_upload_bytes
        self._min_segment_chars = min_segment_chars
        self._concurrency = concurrency

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def ingest_upload(
        self,
        data: bytes,
        mime_type: str,
        file_name: str,
        category: str = DEFAULT_CATEGORY,
        tags: list[str] | tuple[str, ...] = (),
        strategy: ChunkingStrategy | str = ChunkingStrategy.CHUNK,
        owner_id: str | None = None,
    ) -> IngestionResult:
        """Extract, segment, embed and store one uploaded document.

        Raises
        ------
        IngestionError
            Empty or oversized upload, or no segment long enough to store.
        ExtractionError
            Unsupported format or no usable text.
        EmbeddingError
            Any segment failed to embed; nothing is stored in that case.
        ConfigurationError
            No embedding gateway is configured.
        """
        start = time.monotonic()
        strategy = ChunkingStrategy(strategy)

        if not data:
            raise IngestionError(f"Upload {file_name or 'unnamed'} is empty")
        if len(data) > self._max_upload_bytes:
            raise IngestionError(
                f"Upload {file_name} is {len(data)} bytes; "
                f"limit is {self._max_upload_bytes} bytes"
            )
        gateway = self._require_gateway()

        extracted = self._extractor.extract(data, mime_type, file_name)
        if extracted.document_type == DocumentType.UPLOADED_PDF:
            title = extracted.title
        else:
            title = PurePath(file_name).stem or extracted.title

        summary: str | None = None
        if strategy in (ChunkingStrategy.SUMMARIZE, ChunkingStrategy.HYBRID):
            summary = await self._summarizer.summarize(title, extracted.text)

        segments = self._chunker.segment(
            extracted.text, strategy, self._max_chunk_chars, summary=summary
        )
        kept = [s for s in segments if len(s.text.strip()) >= self._min_segment_chars]
        if len(kept) < len(segments):
            logger.info(
                "short_segments_skipped",
                file_name=file_name,
                skipped=len(segments) - len(kept),
            )
        if not kept:
            raise IngestionError(f"No storable content found in {file_name}")

        embeddings = await gateway.embed_many(
            [s.text for s in kept], concurrency=self._concurrency
        )

        base_tags = list(tags)
        summaries: list[ChunkSummary] = []
        for segment, embedding in zip(kept, embeddings):
            chunk = KnowledgeChunk(
                title=self._chunk_title(title, segment),
                content=segment.text,
                category=category,
                tags=self._chunk_tags(base_tags, segment),
                document_type=extracted.document_type,
                embedding=embedding.vector,
                embedded_chars=embedding.embedded_chars,
                embedding_truncated=embedding.truncated,
                source_file=file_name,
                source_size=len(data),
                owner_id=owner_id,
            )
            await self._store.insert(chunk)
            summaries.append(ChunkSummary.from_chunk(chunk))

        result = IngestionResult(
            document_title=title,
            source_file=file_name,
            strategy=strategy,
            extraction_method=extracted.method,
            chunks=summaries,
            ingestion_time=round(time.monotonic() - start, 3),
        )
        logger.info(
            "ingestion_complete",
            file_name=file_name,
            title=title,
            strategy=strategy.value,
            chunks=result.chunks_created,
            truncated_chunks=result.truncated_chunks,
            seconds=result.ingestion_time,
        )
        return result

    # ------------------------------------------------------------------
    # Manual entries and edits
    # ------------------------------------------------------------------

    async def create_manual_entry(
        self,
        title: str,
        content: str,
        category: str = "general",
        tags: list[str] | tuple[str, ...] = (),
        owner_id: str | None = None,
    ) -> KnowledgeChunk:
        """Store a hand-written entry as a MANUAL chunk with its full content.

        Raises
        ------
        IngestionError
            Missing title or content shorter than 50 characters.
        """
        if not title or not title.strip():
            raise IngestionError("Manual entry requires a title")
        if len((content or "").strip()) < MIN_MANUAL_CONTENT_CHARS:
            raise IngestionError(
                f"Manual entry content must be at least {MIN_MANUAL_CONTENT_CHARS} characters"
            )
        gateway = self._require_gateway()
        embedding = await gateway.embed(content)

        chunk = KnowledgeChunk(
            title=title.strip(),
            content=content,
            category=category or "general",
            tags=list(tags),
            document_type=DocumentType.MANUAL,
            embedding=embedding.vector,
            embedded_chars=embedding.embedded_chars,
            embedding_truncated=embedding.truncated,
            owner_id=owner_id,
        )
        await self._store.insert(chunk)
        logger.info("manual_entry_created", chunk_id=chunk.id, title=chunk.title)
        return chunk

    async def update_chunk(self, chunk_id: str, fields: dict[str, Any]) -> KnowledgeChunk | None:
        """Apply a partial update, re-embedding when the content changes.

        Returns ``None`` when the chunk does not exist.  PDF-origin chunks
        raise :class:`~lexbrief.utils.errors.ImmutableChunkError` for content,
        title or tag changes; their category stays editable.
        """
        existing = await self._store.get(chunk_id)
        if existing is None:
            return None

        update = dict(fields)
        content_changed = "content" in update and update["content"] != existing.content
        if content_changed and existing.document_type != DocumentType.UPLOADED_PDF:
            if self._gateway is None:
                logger.warning("update_without_embedding", chunk_id=chunk_id)
                update.update(embedding=None, embedded_chars=0, embedding_truncated=False)
            else:
                embedding = await self._gateway.embed(update["content"])
                update.update(self._embedding_fields(embedding))

        updated = await self._store.update(chunk_id, update)
        logger.info(
            "chunk_updated",
            chunk_id=chunk_id,
            fields=sorted(fields),
            reembedded=content_changed,
        )
        return updated

    async def delete_chunk(self, chunk_id: str) -> bool:
        deleted = await self._store.delete(chunk_id)
        logger.info("chunk_delete_requested", chunk_id=chunk_id, deleted=deleted)
        return deleted

    async def get_chunk(self, chunk_id: str) -> KnowledgeChunk | None:
        return await self._store.get(chunk_id)

    async def list_chunks(self, filters: ChunkFilter | None = None) -> list[KnowledgeChunk]:
        return await self._store.list_all(filters)

    # ------------------------------------------------------------------
    # Bulk import
    # ------------------------------------------------------------------

    async def import_entries(
        self,
        items: list[ImportedKnowledge],
        owner_id: str | None = None,
    ) -> tuple[list[ChunkSummary], list[tuple[ImportedKnowledge, list[str]]]]:
        """Validate and store hand-authored knowledge items as MANUAL chunks.

        Embedding failures are tolerated: the item is stored without an
        embedding and simply takes no part in semantic search.

        Returns
        -------
        tuple
            ``(stored, invalid)`` where *invalid* pairs each rejected item
            with its validation errors.
        """
        valid, invalid = validate_knowledge_items(items)
        for item, errors in invalid:
            logger.warning("import_item_rejected", title=item.title, errors=errors)

        results: list[EmbeddingResult | BaseException | None]
        if self._gateway is None:
            results = [None] * len(valid)
        else:
            results = list(
                await self._gateway.embed_many(
                    [item.content for item in valid],
                    concurrency=self._concurrency,
                    return_exceptions=True,
                )
            )

        stored: list[ChunkSummary] = []
        for item, result in zip(valid, results):
            fields: dict[str, Any] = {}
            if isinstance(result, EmbeddingResult):
                fields = self._embedding_fields(result)
            elif isinstance(result, EmbeddingError):
                logger.warning(
                    "import_item_not_embedded",
                    title=item.title,
                    cause=result.cause.value,
                )
            elif isinstance(result, BaseException):
                raise result

            tags = list(item.tags)
            if item.source:
                tags.append(item.source)
            chunk = KnowledgeChunk(
                title=item.title.strip(),
                content=item.content,
                category=item.category,
                tags=tags,
                document_type=DocumentType.MANUAL,
                owner_id=owner_id,
                **fields,
            )
            await self._store.insert(chunk)
            stored.append(ChunkSummary.from_chunk(chunk))

        logger.info(
            "import_complete",
            stored=len(stored),
            rejected=len(invalid),
            embedded=sum(1 for s in stored if s.embedded_chars),
        )
        return stored, invalid

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_gateway(self) -> EmbeddingGateway:
        if self._gateway is None:
            raise ConfigurationError(
                "No embedding provider configured; set OPENAI_API_KEY to ingest documents"
            )
        return self._gateway

    @staticmethod
    def _embedding_fields(result: EmbeddingResult) -> dict[str, Any]:
        return {
            "embedding": result.vector,
            "embedded_chars": result.embedded_chars,
            "embedding_truncated": result.truncated,
        }

    @staticmethod
    def _chunk_title(title: str, segment: Segment) -> str:
        return f"{title} - {segment.label}" if segment.label else title

    @staticmethod
    def _chunk_tags(base_tags: list[str], segment: Segment) -> list[str]:
        if segment.kind == "summary":
            return [*base_tags, "summary"]
        if segment.kind == "section":
            return [*base_tags, "section", slugify(segment.heading or segment.label)]
        return list(base_tags)
