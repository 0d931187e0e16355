"""Document ingestion pipeline for the lexbrief knowledge store.

Orchestrates the full pipeline: **extract -> segment -> embed -> store**.

1. **Extract** (text_extractor.py / TextExtractor) -- PDF, DOCX and plain
   text bytes become normalized text and a title, with a byte-level
   fallback for files the structured parsers cannot read.

2. **Segment** (chunker.py / TextChunker) -- paragraph-aligned segments
   for the ``chunk``, ``summarize``, ``section`` and ``hybrid`` strategies.
   Summaries come from summarizer.py / DocumentSummarizer.

3. **Embed** (via EmbeddingGateway) -- one size-capped embedding per
   segment.

4. **Store** (via IDocumentStore) -- one KnowledgeChunk per segment, in
   source order.

Hand-authored JSON/CSV knowledge enters through knowledge_import.py and
the same IngestionService.
"""

from lexbrief.services.ingestion.chunker import TextChunker
from lexbrief.services.ingestion.ingestion_service import IngestionService
from lexbrief.services.ingestion.summarizer import DocumentSummarizer
from lexbrief.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "DocumentSummarizer",
    "IngestionService",
    "TextChunker",
    "TextExtractor",
]
