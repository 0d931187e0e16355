"""Assembles the knowledge context that accompanies a user's question.

Two independent sources feed the composed context:

* **Core knowledge** -- curated static entries picked by the declarative
  rule table in :mod:`lexbrief.config.core_knowledge`.  Always available.
* **Semantic matches** -- published briefs (embedded on the fly) and stored
  chunks that carry an embedding, ranked against the query vector.  Only
  available when an embedding gateway was configured.

Either source can fail without affecting the other; a failure is logged and
contributes an empty part.  :meth:`KnowledgeComposer.compose` never raises,
so a chat request always gets *some* context (possibly the empty string).

Output layout::

    RELEVANT KNOWLEDGE BASE:
    <core entry content>

    <core entry content>

    RELEVANT DOCUMENTS:

    --- <title> (<PDF Document|Legal Brief|Document>) ---
    <content>
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import structlog

from lexbrief.config.core_knowledge import select_core_knowledge
from lexbrief.models.knowledge import (
    ChunkFilter,
    CoreKnowledgeEntry,
    DocumentType,
    EmbeddingResult,
    UserRole,
)
from lexbrief.services.similarity import rank
from lexbrief.utils.concurrency import throttled_gather

if TYPE_CHECKING:
    from lexbrief.interfaces.brief_provider import IBriefProvider
    from lexbrief.interfaces.document_store import IDocumentStore
    from lexbrief.services.embedding_gateway import EmbeddingGateway

logger = structlog.get_logger(logger_name=__name__)

KNOWLEDGE_BASE_HEADER = "RELEVANT KNOWLEDGE BASE:\n"
DOCUMENTS_HEADER = "RELEVANT DOCUMENTS:\n"
DEFAULT_TOP_K = 3

_SOURCE_LABELS: dict[DocumentType, str] = {
    DocumentType.UPLOADED_PDF: "PDF Document",
    DocumentType.MANUAL: "Legal Brief",
    DocumentType.UPLOADED_TEXT: "Document",
}


def source_label(document_type: DocumentType) -> str:
    """Provenance label shown next to a semantic match's title."""
    return _SOURCE_LABELS.get(document_type, "Document")


class SemanticMatch(NamedTuple):
    """A ranked retrieval candidate ready to be rendered."""

    title: str
    content: str
    document_type: DocumentType
    similarity: float


def render_context(core: list[CoreKnowledgeEntry], matches: list[SemanticMatch]) -> str:
    """Concatenate the two context parts; empty parts are omitted."""
    parts: list[str] = []
    if core:
        parts.append(KNOWLEDGE_BASE_HEADER + "".join(f"{entry.content}\n\n" for entry in core))
    if matches:
        parts.append(
            DOCUMENTS_HEADER
            + "".join(
                f"\n--- {m.title} ({source_label(m.document_type)}) ---\n{m.content}\n"
                for m in matches
            )
        )
    return "".join(parts)


class KnowledgeComposer:
    """Builds the relevance-ranked knowledge context for a query and role.

    Parameters
    ----------
    gateway:
        Embedding gateway, or ``None`` when no embedding provider is
        configured.  Without it semantic search is skipped.
    store:
        Source of stored chunks.
    briefs:
        Source of published briefs.  Optional; briefs are simply absent from
        the candidate pool when omitted.
    top_k:
        Number of semantic matches kept.
    concurrency:
        Maximum brief embedding calls in flight.
    """

    def __init__(
        self,
        gateway: EmbeddingGateway | None,
        store: IDocumentStore,
        briefs: IBriefProvider | None = None,
        top_k: int = DEFAULT_TOP_K,
        concurrency: int = 1,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._briefs = briefs
        self._top_k = top_k
        self._concurrency = concurrency

    async def compose(self, query: str, role: UserRole | str | None) -> str:
        """Return the composed knowledge context for *query* asked by *role*."""
        matches = await self._semantic_matches(query)

        try:
            core = select_core_knowledge(query, role)
        except Exception as exc:
            logger.error("core_knowledge_selection_failed", error=str(exc))
            core = []

        context = render_context(core, matches)
        logger.info(
            "knowledge_composed",
            role=str(role.value if isinstance(role, UserRole) else role),
            core_entries=[entry.key for entry in core],
            semantic_matches=len(matches),
            context_chars=len(context),
        )
        return context

    async def _semantic_matches(self, query: str) -> list[SemanticMatch]:
        if self._gateway is None:
            logger.debug("semantic_search_skipped", reason="no_embedding_gateway")
            return []
        try:
            return await self._search(self._gateway, query)
        except Exception as exc:
            logger.error(
                "semantic_search_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return []

    async def _search(self, gateway: EmbeddingGateway, query: str) -> list[SemanticMatch]:
        query_vector = (await gateway.embed(query)).vector

        candidates: list[SemanticMatch] = []
        vectors: list[list[float]] = []

        if self._briefs is not None:
            briefs = await self._briefs.list_published_briefs()
            results = await throttled_gather(
                [gateway.embed(brief.content) for brief in briefs],
                concurrency=self._concurrency,
                return_exceptions=True,
            )
            for brief, result in zip(briefs, results):
                if not isinstance(result, EmbeddingResult):
                    logger.warning("brief_embedding_skipped", brief_id=brief.id, error=str(result))
                    continue
                candidates.append(
                    SemanticMatch(brief.title, brief.content, DocumentType.MANUAL, 0.0)
                )
                vectors.append(result.vector)

        for chunk in await self._store.list_all(ChunkFilter(has_embedding=True)):
            candidates.append(
                SemanticMatch(chunk.title, chunk.content, chunk.document_type, 0.0)
            )
            vectors.append(chunk.embedding or [])

        ranked = rank(
            query_vector,
            ((str(i), vec) for i, vec in enumerate(vectors)),
            k=self._top_k,
        )
        return [
            candidates[int(scored.id)]._replace(similarity=scored.similarity)
            for scored in ranked
        ]
