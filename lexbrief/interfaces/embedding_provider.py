"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  The
embedding gateway (:mod:`lexbrief.services.embedding_gateway`) wraps one
injected provider and is the only caller; it enforces the size ceilings,
the per-call timeout and the dimension check, so implementations only need
to talk to their backend and raise
:class:`~lexbrief.utils.errors.EmbeddingError` with a classified cause.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAIEmbeddingProvider
# Located in: lexbrief/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and composition."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        lexbrief.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Parameters
        ----------
        text:
            The text string to embed.

        Returns
        -------
        list[float]
            The embedding vector with length equal to :meth:`get_dimension`.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        This value must remain constant for the lifetime of the provider
        instance; every stored embedding shares it.
        Example: ``1536`` for OpenAI ``text-embedding-3-small``.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-text-embedding-3-small"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has credentials configured."""
