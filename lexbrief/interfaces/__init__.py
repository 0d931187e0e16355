"""Public interface definitions for all external service providers.

Every external service lexbrief touches is accessed through the abstract
base classes in this package.  Concrete adapters live in
``lexbrief/providers/`` and are injected by ``lexbrief/main.py``:

    Interface            ->  Concrete implementations
    --------------------------------------------------------------
    IEmbeddingProvider   ->  OpenAIEmbeddingProvider
    ILLMProvider         ->  OpenAILLMProvider
    IDocumentStore       ->  InMemoryDocumentStore, SQLiteDocumentStore
    IBriefProvider       ->  InMemoryDocumentStore, SQLiteDocumentStore
"""

from lexbrief.interfaces.brief_provider import IBriefProvider
from lexbrief.interfaces.document_store import IDocumentStore
from lexbrief.interfaces.embedding_provider import IEmbeddingProvider
from lexbrief.interfaces.llm_provider import ILLMProvider

__all__ = [
    "IBriefProvider",
    "IDocumentStore",
    "IEmbeddingProvider",
    "ILLMProvider",
]
