"""Pydantic models for lexbrief."""

from lexbrief.models.knowledge import (
    Brief,
    ChunkFilter,
    ChunkingStrategy,
    ChunkSummary,
    CoreKnowledgeEntry,
    DocumentType,
    EmbeddingResult,
    ExtractedDocument,
    ImportedKnowledge,
    IngestionResult,
    KnowledgeChunk,
    ScoredCandidate,
    Section,
    Segment,
    UserRole,
)

__all__ = [
    "Brief",
    "ChunkFilter",
    "ChunkSummary",
    "ChunkingStrategy",
    "CoreKnowledgeEntry",
    "DocumentType",
    "EmbeddingResult",
    "ExtractedDocument",
    "ImportedKnowledge",
    "IngestionResult",
    "KnowledgeChunk",
    "ScoredCandidate",
    "Section",
    "Segment",
    "UserRole",
]
