"""lexbrief composition root.

Wires together providers and services via constructor injection.  Loads
configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.

Provider selection happens exactly once, here.  When no embedding
credentials are configured no :class:`EmbeddingGateway` is built at all;
every consumer receives ``None`` and degrades on its own terms:

* :class:`KnowledgeComposer` skips semantic search and returns core
  knowledge only.
* :class:`IngestionService` refuses uploads and manual entries with a
  ``ConfigurationError`` but still stores bulk imports without embeddings.
"""

from __future__ import annotations

from typing import Any

import structlog

from lexbrief.config.loader import load_config
from lexbrief.config.settings import Settings
from lexbrief.interfaces.embedding_provider import IEmbeddingProvider
from lexbrief.interfaces.llm_provider import ILLMProvider
from lexbrief.providers.document_store.memory_document_store import InMemoryDocumentStore
from lexbrief.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from lexbrief.services.embedding_gateway import EmbeddingGateway
from lexbrief.services.ingestion.chunker import TextChunker
from lexbrief.services.ingestion.ingestion_service import MIN_SEGMENT_CHARS, IngestionService
from lexbrief.services.ingestion.summarizer import DocumentSummarizer
from lexbrief.services.ingestion.text_extractor import TextExtractor
from lexbrief.services.knowledge_composer import KnowledgeComposer
from lexbrief.utils.errors import ConfigurationError
from lexbrief.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def init_logging(app_settings: Settings, config: dict[str, Any] | None = None) -> None:
    """Configure structlog (JSON in production).

    ``logging.level`` from the resolved *config* wins over
    ``app_settings.log_level`` when present.
    """
    level = (config or {}).get("logging", {}).get("level", app_settings.log_level)
    configure_logging(
        log_level=level,
        json_output=(app_settings.app_env == "production"),
    )


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(
    app_settings: Settings, model: str | None = None
) -> IEmbeddingProvider | None:
    """Return the OpenAI-compatible embedding provider, or ``None``.

    ``None`` means "no credentials": callers must not build a gateway.
    """
    if not app_settings.has_embedding_credentials():
        return None

    from lexbrief.providers.embedding.openai_embedding_provider import (
        OpenAIEmbeddingProvider,
    )

    provider = OpenAIEmbeddingProvider(settings=app_settings, model=model)
    if provider.is_available():
        return provider
    return None


def _build_llm_provider(app_settings: Settings, model: str | None = None) -> ILLMProvider | None:
    """Return the text-generation provider used for summaries, or ``None``."""
    if not app_settings.openai_api_key:
        return None

    from lexbrief.providers.llm.openai_provider import OpenAILLMProvider

    provider = OpenAILLMProvider(settings=app_settings, model=model)
    return provider if provider.is_available() else None


def _build_gateway(
    app_settings: Settings, embedding_cfg: dict[str, Any] | None = None
) -> EmbeddingGateway | None:
    emb = embedding_cfg or {}
    provider = _build_embedding_provider(app_settings, model=emb.get("model"))
    if provider is None:
        _logger.warning(
            "embedding_provider_unavailable",
            detail="semantic search disabled; set OPENAI_API_KEY to enable it",
        )
        return None
    _logger.info("embedding_provider_selected", provider=provider.get_provider_name())
    return EmbeddingGateway(
        provider=provider,
        max_chars=emb.get("max_chars", app_settings.embedding_max_chars),
        max_tokens=emb.get("max_tokens", app_settings.embedding_max_tokens),
        chars_per_token=emb.get("chars_per_token", app_settings.embedding_chars_per_token),
        timeout_seconds=emb.get("timeout_seconds", app_settings.embedding_timeout_seconds),
    )


async def _build_store(
    app_settings: Settings, store_cfg: dict[str, Any] | None = None
) -> InMemoryDocumentStore | SQLiteDocumentStore:
    store_cfg = store_cfg or {}
    raw_backend = str(store_cfg.get("backend", app_settings.document_store_backend))
    backend = raw_backend.strip().lower()
    if backend == "memory":
        return InMemoryDocumentStore()
    if backend == "sqlite":
        store = SQLiteDocumentStore(
            db_path=store_cfg.get("path", app_settings.document_store_path)
        )
        await store.initialize()
        return store
    raise ConfigurationError(
        f"Unknown document store backend {raw_backend!r}; expected 'sqlite' or 'memory'"
    )


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


async def build_services(
    custom_settings: Settings | None = None,
    config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct and return all services with injected dependencies.

    Every tunable is read from the resolved *config* (YAML defaults with
    explicitly set environment values merged on top).  Keys missing from
    *config* fall back to the corresponding :class:`Settings` field.

    Parameters
    ----------
    custom_settings:
        Application settings.  A fresh ``Settings()`` is read if omitted.
    config:
        Resolved configuration from :func:`load_config`; loaded from
        ``config/config.yaml`` if omitted.

    Returns
    -------
    dict
        Service instances keyed by role name: ``store``, ``gateway``
        (possibly ``None``), ``ingestion_service``, ``composer``,
        ``settings`` and ``config``.
    """
    s = custom_settings or Settings()
    cfg = config if config is not None else load_config(settings=s)
    summary_cfg = cfg.get("summary", {})
    ingestion_cfg = cfg.get("ingestion", {})
    composer_cfg = cfg.get("composer", {})

    store = await _build_store(s, cfg.get("document_store"))
    gateway = _build_gateway(s, cfg.get("embedding"))

    chunk_max_chars = ingestion_cfg.get("chunk_max_chars", s.chunk_max_chars)
    concurrency = ingestion_cfg.get("concurrency", s.ingestion_concurrency)

    summarizer = DocumentSummarizer(
        llm=_build_llm_provider(s, model=summary_cfg.get("model")),
        max_input_chars=summary_cfg.get("max_input_chars", 6000),
        max_tokens=summary_cfg.get("max_tokens", 1000),
        temperature=summary_cfg.get("temperature", 0.3),
    )
    ingestion_service = IngestionService(
        store=store,
        gateway=gateway,
        extractor=TextExtractor(
            min_chars=ingestion_cfg.get("min_extracted_chars", s.min_extracted_chars)
        ),
        chunker=TextChunker(max_chunk_chars=chunk_max_chars),
        summarizer=summarizer,
        max_chunk_chars=chunk_max_chars,
        max_upload_bytes=ingestion_cfg.get("max_upload_bytes", s.max_upload_bytes),
        min_segment_chars=ingestion_cfg.get("min_segment_chars", MIN_SEGMENT_CHARS),
        concurrency=concurrency,
    )
    composer = KnowledgeComposer(
        gateway=gateway,
        store=store,
        briefs=store,
        top_k=composer_cfg.get("top_k", s.composer_top_k),
        concurrency=concurrency,
    )

    _logger.info(
        "services_built",
        store=store.get_provider_name(),
        embeddings=gateway is not None,
        summaries_via_llm=summarizer.uses_llm,
    )
    return {
        "store": store,
        "gateway": gateway,
        "ingestion_service": ingestion_service,
        "composer": composer,
        "settings": s,
        "config": cfg,
    }
