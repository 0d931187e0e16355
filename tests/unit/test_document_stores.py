"""Unit tests for the in-memory and SQLite document stores.

Both stores share one contract, so every test runs against each backend.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from lexbrief.interfaces.document_store import apply_chunk_update
from lexbrief.models.knowledge import Brief, ChunkFilter, DocumentType, KnowledgeChunk
from lexbrief.providers.document_store.memory_document_store import InMemoryDocumentStore
from lexbrief.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from lexbrief.utils.errors import DocumentStoreError, ImmutableChunkError


def _chunk(**overrides) -> KnowledgeChunk:
    defaults = {
        "title": "Lease registration",
        "content": "Leases over three years must be registered at the land office.",
        "category": "leasehold",
        "tags": ["lease", "registration"],
        "document_type": DocumentType.MANUAL,
        "embedding": [0.25, -0.5, 0.125],
        "embedded_chars": 62,
    }
    defaults.update(overrides)
    return KnowledgeChunk(**defaults)


@pytest.fixture(params=["memory", "sqlite"])
async def store(request, tmp_path: Path):  # noqa: ANN001, ANN201
    if request.param == "memory":
        return InMemoryDocumentStore()
    sqlite_store = SQLiteDocumentStore(db_path=tmp_path / "nested" / "knowledge.db")
    await sqlite_store.initialize()
    return sqlite_store


class TestInsertAndGet:
    @pytest.mark.asyncio
    async def test_round_trip(self, store) -> None:  # noqa: ANN001
        chunk = _chunk(source_file="deed.pdf", source_size=1024, owner_id="admin-1")
        returned_id = await store.insert(chunk)

        assert returned_id == chunk.id
        assert await store.get(chunk.id) == chunk

    @pytest.mark.asyncio
    async def test_missing_returns_none(self, store) -> None:  # noqa: ANN001
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store) -> None:  # noqa: ANN001
        chunk = _chunk()
        await store.insert(chunk)
        with pytest.raises(DocumentStoreError, match="already exists"):
            await store.insert(chunk)

    @pytest.mark.asyncio
    async def test_chunk_without_embedding(self, store) -> None:  # noqa: ANN001
        chunk = _chunk(embedding=None, embedded_chars=0)
        await store.insert(chunk)

        fetched = await store.get(chunk.id)
        assert fetched.embedding is None
        assert fetched.has_embedding is False


class TestListAll:
    @pytest.mark.asyncio
    async def test_insertion_order(self, store) -> None:  # noqa: ANN001
        ids = [await store.insert(_chunk(title=f"Chunk {i}")) for i in range(4)]
        assert [c.id for c in await store.list_all()] == ids

    @pytest.mark.asyncio
    async def test_filters(self, store) -> None:  # noqa: ANN001
        pdf = _chunk(document_type=DocumentType.UPLOADED_PDF, category="deeds", tags=["pdf"])
        text = _chunk(document_type=DocumentType.UPLOADED_TEXT, owner_id="u2")
        bare = _chunk(embedding=None, embedded_chars=0, tags=["draft"])
        for c in (pdf, text, bare):
            await store.insert(c)

        async def ids(**kw) -> list[str]:  # noqa: ANN003
            return [c.id for c in await store.list_all(ChunkFilter(**kw))]

        assert await ids(document_type=DocumentType.UPLOADED_PDF) == [pdf.id]
        assert await ids(category="deeds") == [pdf.id]
        assert await ids(tag="draft") == [bare.id]
        assert await ids(owner_id="u2") == [text.id]
        assert await ids(has_embedding=True) == [pdf.id, text.id]
        assert await ids(has_embedding=False) == [bare.id]


class TestUpdate:
    @pytest.mark.asyncio
    async def test_manual_chunk_is_editable(self, store) -> None:  # noqa: ANN001
        chunk = _chunk()
        await store.insert(chunk)

        updated = await store.update(
            chunk.id, {"title": "New title", "content": "New content", "tags": ["a", "a", "b"]}
        )

        assert updated.title == "New title"
        assert updated.tags == ["a", "b"]
        assert updated.updated_at >= chunk.updated_at
        assert await store.get(chunk.id) == updated

    @pytest.mark.asyncio
    async def test_text_chunk_is_editable(self, store) -> None:  # noqa: ANN001
        chunk = _chunk(document_type=DocumentType.UPLOADED_TEXT)
        await store.insert(chunk)

        updated = await store.update(chunk.id, {"content": "Rewritten"})
        assert updated.content == "Rewritten"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["content", "title", "tags"])
    async def test_pdf_chunk_locked_fields(self, store, field: str) -> None:  # noqa: ANN001
        chunk = _chunk(document_type=DocumentType.UPLOADED_PDF)
        await store.insert(chunk)
        new_value = ["other"] if field == "tags" else "changed"

        with pytest.raises(ImmutableChunkError) as exc_info:
            await store.update(chunk.id, {field: new_value})

        assert exc_info.value.fields == [field]
        assert await store.get(chunk.id) == chunk

    @pytest.mark.asyncio
    async def test_pdf_chunk_category_is_editable(self, store) -> None:  # noqa: ANN001
        chunk = _chunk(document_type=DocumentType.UPLOADED_PDF)
        await store.insert(chunk)

        updated = await store.update(chunk.id, {"category": "archived", "title": chunk.title})

        assert updated.category == "archived"
        assert updated.content == chunk.content

    @pytest.mark.asyncio
    async def test_system_fields_rejected(self, store) -> None:  # noqa: ANN001
        chunk = _chunk()
        await store.insert(chunk)

        with pytest.raises(ValueError, match="document_type"):
            await store.update(chunk.id, {"document_type": DocumentType.UPLOADED_TEXT})

    @pytest.mark.asyncio
    async def test_missing_returns_none(self, store) -> None:  # noqa: ANN001
        assert await store.update("nope", {"title": "x"}) is None


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete(self, store) -> None:  # noqa: ANN001
        chunk = _chunk(document_type=DocumentType.UPLOADED_PDF)
        await store.insert(chunk)

        assert await store.delete(chunk.id) is True
        assert await store.get(chunk.id) is None
        assert await store.delete(chunk.id) is False


class TestBriefs:
    @pytest.mark.asyncio
    async def test_only_published_listed(self, store) -> None:  # noqa: ANN001
        published = Brief(title="Usufruct explained", slug="usufruct", content="Body")
        draft = Brief(title="Draft", content="Body", is_published=False)
        await store.add_brief(published)
        await store.add_brief(draft)

        assert [b.id for b in await store.list_published_briefs()] == [published.id]

    @pytest.mark.asyncio
    async def test_add_brief_replaces(self, store) -> None:  # noqa: ANN001
        brief = Brief(title="V1", content="Body")
        await store.add_brief(brief)
        await store.add_brief(brief.model_copy(update={"title": "V2"}))

        titles = [b.title for b in await store.list_published_briefs()]
        assert titles == ["V2"]


class TestApplyChunkUpdate:
    def test_unknown_fields_listed(self) -> None:
        with pytest.raises(ValueError, match="created_at, id"):
            apply_chunk_update(_chunk(), {"id": "x", "created_at": None})

    def test_pdf_embedding_fields_locked(self) -> None:
        chunk = _chunk(document_type=DocumentType.UPLOADED_PDF)
        with pytest.raises(ImmutableChunkError):
            apply_chunk_update(chunk, {"embedding": [1.0, 1.0, 1.0]})

    def test_returns_copy(self) -> None:
        chunk = _chunk()
        updated = apply_chunk_update(chunk, {"category": "x"})

        assert updated is not chunk
        assert chunk.category == "leasehold"
        assert updated.id == chunk.id
