"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports both real OpenAI and OpenAI-compatible providers via custom
``base_url`` and model name settings.

SDK exceptions are reclassified into an
:class:`~lexbrief.utils.errors.EmbeddingFailureCause` so callers can decide
on retry without importing ``openai``.  Size ceilings are not enforced here;
the embedding gateway applies them before any call reaches this adapter.
"""

from __future__ import annotations

import openai
import structlog

from lexbrief.config.settings import Settings
from lexbrief.interfaces.embedding_provider import IEmbeddingProvider
from lexbrief.utils.errors import EmbeddingError, EmbeddingFailureCause

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"
_OPENAI_BATCH_LIMIT = 2048

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
}


def classify_openai_error(exc: Exception) -> EmbeddingFailureCause:
    """Map an ``openai`` SDK exception onto the embedding failure taxonomy.

    ``APITimeoutError`` subclasses ``APIConnectionError`` in the SDK, so it
    is checked first.
    """
    if isinstance(exc, openai.APITimeoutError):
        return EmbeddingFailureCause.TIMEOUT
    if isinstance(exc, openai.RateLimitError):
        return EmbeddingFailureCause.RATE_LIMITED
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return EmbeddingFailureCause.AUTH_FAILED
    if isinstance(
        exc,
        (openai.BadRequestError, openai.NotFoundError, openai.UnprocessableEntityError),
    ):
        return EmbeddingFailureCause.BAD_REQUEST
    if isinstance(exc, openai.APIConnectionError):
        return EmbeddingFailureCause.NETWORK_ERROR
    if isinstance(exc, openai.APIStatusError):
        return EmbeddingFailureCause.from_status_code(exc.status_code)
    return EmbeddingFailureCause.UNKNOWN


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) by default.  When
    ``openai_base_url`` is configured the client points at that URL and
    uses ``openai_embedding_model`` if set.  An explicit *model* argument
    (the resolved ``embedding.model`` config key) takes precedence.
    """

    def __init__(self, settings: Settings, model: str | None = None) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {"api_key": self._api_key}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = model or settings.openai_embedding_model or _DEFAULT_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 1536)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Automatically splits into batches of 2048 if the input exceeds the
        per-call limit.
        """
        if not texts:
            return []

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
                batch = texts[start : start + _OPENAI_BATCH_LIMIT]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                )
                all_embeddings.extend(item.embedding for item in response.data)
                logger.info(
                    "openai_embedding_batch",
                    model=self._model,
                    provider=self._provider_label,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
            return all_embeddings
        except openai.OpenAIError as exc:
            cause = classify_openai_error(exc)
            logger.warning(
                "openai_embedding_failed",
                provider=self._provider_label,
                cause=cause.value,
                error=str(exc),
            )
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                cause=cause,
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text])
        if not result:
            raise EmbeddingError(
                message=f"{self._provider_label} returned no embedding",
                cause=EmbeddingFailureCause.UNKNOWN,
                provider_name=self.get_provider_name(),
            )
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
