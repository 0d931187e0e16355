"""Embedding gateway: the single choke point between text and the provider.

Every text that reaches the embedding provider passes through
:meth:`EmbeddingGateway.prepare`, which enforces two successive ceilings:

1. an absolute character ceiling (default 6000 chars), then
2. a token estimate ``ceil(len / chars_per_token)`` held under a token
   ceiling (default 4000).  The 2.5 chars/token divisor is deliberately
   pessimistic for dense legal prose.

Exceeding either ceiling truncates, it never rejects.  Truncation is
logged and recorded on the :class:`EmbeddingResult` so the caller can
persist how much of a chunk its vector actually covers.

The gateway holds an injected provider.  Whether embeddings are available
at all is decided once by the composition root, which simply does not
build a gateway when no credentials are configured.
"""

from __future__ import annotations

import asyncio
import math

import structlog

from lexbrief.interfaces.embedding_provider import IEmbeddingProvider
from lexbrief.models.knowledge import EmbeddingResult
from lexbrief.utils.concurrency import throttled_gather
from lexbrief.utils.errors import EmbeddingError, EmbeddingFailureCause

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MAX_CHARS = 6000
DEFAULT_MAX_TOKENS = 4000
DEFAULT_CHARS_PER_TOKEN = 2.5
DEFAULT_TIMEOUT_SECONDS = 30.0


def estimate_tokens(text: str, chars_per_token: float = DEFAULT_CHARS_PER_TOKEN) -> int:
    """Pessimistic token estimate: ``ceil(len(text) / chars_per_token)``."""
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


class EmbeddingGateway:
    """Size-safe, timeout-bounded wrapper around an :class:`IEmbeddingProvider`.

    Parameters
    ----------
    provider:
        The embedding backend.  Must already be usable.
    max_chars:
        Absolute character ceiling applied first.
    max_tokens:
        Token ceiling applied to the estimate after the char ceiling.
    chars_per_token:
        Divisor for the token estimate.
    timeout_seconds:
        Upper bound on a single provider call.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        max_chars: int = DEFAULT_MAX_CHARS,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        chars_per_token: float = DEFAULT_CHARS_PER_TOKEN,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if max_chars <= 0 or max_tokens <= 0 or chars_per_token <= 0:
            raise ValueError("Embedding ceilings must be positive")
        self._provider = provider
        self._max_chars = max_chars
        self._max_tokens = max_tokens
        self._chars_per_token = chars_per_token
        self._timeout = timeout_seconds

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    # ------------------------------------------------------------------
    # Size ceilings
    # ------------------------------------------------------------------

    def prepare(self, text: str) -> tuple[str, bool]:
        """Cap *text* to both ceilings.

        Returns the text to embed and whether it was truncated.  Idempotent:
        ``prepare(prepare(t)[0])`` returns the same text with ``False``.
        """
        prepared = text
        if len(prepared) > self._max_chars:
            prepared = prepared[: self._max_chars]

        if estimate_tokens(prepared, self._chars_per_token) > self._max_tokens:
            # Largest length whose estimate stays within the token ceiling.
            allowed = math.floor(self._max_tokens * self._chars_per_token)
            while allowed > 0 and math.ceil(allowed / self._chars_per_token) > self._max_tokens:
                allowed -= 1
            prepared = prepared[:allowed]

        return prepared, len(prepared) < len(text)

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> EmbeddingResult:
        """Embed *text* after applying the ceilings.

        Raises
        ------
        EmbeddingError
            With cause TIMEOUT when the call exceeds the timeout, the
            provider's own classification when it fails, or UNKNOWN when the
            returned vector does not match the provider's dimension.
        """
        prepared, truncated = self.prepare(text)
        tokens = estimate_tokens(prepared, self._chars_per_token)
        if truncated:
            logger.warning(
                "embedding_input_truncated",
                provider=self.provider_name,
                original_chars=len(text),
                embedded_chars=len(prepared),
                estimated_tokens=tokens,
            )

        try:
            vector = await asyncio.wait_for(
                self._provider.embed_single(prepared),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(
                "embedding_timeout",
                provider=self.provider_name,
                timeout_seconds=self._timeout,
            )
            raise EmbeddingError(
                message=f"Embedding call exceeded {self._timeout:g}s",
                cause=EmbeddingFailureCause.TIMEOUT,
                provider_name=self.provider_name,
            ) from exc
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(
                message=f"Embedding call failed: {exc}",
                cause=EmbeddingFailureCause.UNKNOWN,
                provider_name=self.provider_name,
            ) from exc

        expected = self.dimension
        if len(vector) != expected:
            raise EmbeddingError(
                message=f"Provider returned {len(vector)}-dim vector, expected {expected}",
                cause=EmbeddingFailureCause.UNKNOWN,
                provider_name=self.provider_name,
            )

        return EmbeddingResult(
            vector=list(vector),
            truncated=truncated,
            original_chars=len(text),
            embedded_chars=len(prepared),
            estimated_tokens=tokens,
        )

    async def embed_many(
        self,
        texts: list[str],
        concurrency: int = 1,
        return_exceptions: bool = False,
    ) -> list[EmbeddingResult | BaseException]:
        """Embed *texts* with at most *concurrency* calls in flight.

        Results are in input order.  With ``return_exceptions=True`` a failed
        text yields its :class:`EmbeddingError` in place of a result.
        """
        return await throttled_gather(
            [self.embed(t) for t in texts],
            concurrency=concurrency,
            return_exceptions=return_exceptions,
        )
