"""Shared pytest fixtures for the lexbrief test suite."""

from __future__ import annotations

import hashlib
import re
from unittest.mock import AsyncMock, MagicMock

import pytest

from lexbrief.config.settings import Settings
from lexbrief.interfaces.embedding_provider import IEmbeddingProvider
from lexbrief.interfaces.llm_provider import ILLMProvider
from lexbrief.providers.document_store.memory_document_store import InMemoryDocumentStore
from lexbrief.services.embedding_gateway import EmbeddingGateway

_WORD = re.compile(r"[a-z]+")


# ---------------------------------------------------------------------------
# Deterministic embedding provider
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Bag-of-words hashing embedder; texts sharing words score as similar.

    ``vectors`` pins exact vectors for specific texts.  ``fail_on`` makes
    any text containing one of its substrings raise the mapped exception.
    Every text received is recorded in ``calls``.
    """

    def __init__(
        self,
        dimension: int = 16,
        vectors: dict[str, list[float]] | None = None,
        fail_on: dict[str, Exception] | None = None,
    ) -> None:
        self.dimension = dimension
        self.vectors = dict(vectors or {})
        self.fail_on = dict(fail_on or {})
        self.calls: list[str] = []

    def vector_for(self, text: str) -> list[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        vec = [0.0] * self.dimension
        for word in _WORD.findall(text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimension
            vec[bucket] += 1.0
        return vec

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        for needle, exc in self.fail_on.items():
            if needle in text:
                raise exc
        return self.vector_for(text)

    def get_dimension(self) -> int:
        return self.dimension

    def get_provider_name(self) -> str:
        return "fake-embedding"

    def is_available(self) -> bool:
        return True


def make_settings(**overrides) -> Settings:
    """Settings isolated from the developer's ``.env`` and API keys."""
    defaults = {
        "openai_api_key": "",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "openai_text_model": "",
        "document_store_backend": "memory",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def provider_factory() -> type[FakeEmbeddingProvider]:
    """The fake provider class, for tests that need pinned vectors or failures."""
    return FakeEmbeddingProvider


@pytest.fixture
def settings_factory():  # noqa: ANN201
    return make_settings


@pytest.fixture
def fake_embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def gateway(fake_embedding_provider: FakeEmbeddingProvider) -> EmbeddingGateway:
    return EmbeddingGateway(provider=fake_embedding_provider)


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider; override ``complete.return_value`` / ``side_effect`` per test."""
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.complete = AsyncMock(return_value="A concise summary of the legal document.")
    return mock


@pytest.fixture
def legal_text() -> str:
    """Multi-paragraph legal text with numbered clause headings."""
    return (
        "LEASE AGREEMENT\n\n"
        "This lease is made between the lessor and the lessee for the residential "
        "unit described below, subject to the laws of the Kingdom of Thailand.\n\n"
        "1. Term\n"
        "The lease runs for thirty years from the date of registration at the land "
        "office and may be renewed once by mutual written agreement of the parties.\n\n"
        "2. Rent\n"
        "Rent is payable monthly in advance by bank transfer. Late payment accrues "
        "interest at the statutory rate until the outstanding amount is settled.\n\n"
        "3. Registration\n"
        "Both parties shall attend the land office to register the lease. The lessee "
        "bears the registration fee of one percent of the total rent for the term."
    )
