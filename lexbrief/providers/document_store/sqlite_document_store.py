"""SQLite-backed document store.

Persists knowledge chunks and published briefs to a local SQLite database
(``data/knowledge.db`` by default).  Uses ``aiosqlite`` for async I/O; tags
and embeddings are stored as JSON text.  Update rules are shared with the
in-memory store through :func:`apply_chunk_update`, so a read-modify-write
happens inside one connection.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from lexbrief.interfaces.brief_provider import IBriefProvider
from lexbrief.interfaces.document_store import IDocumentStore, apply_chunk_update
from lexbrief.models.knowledge import Brief, ChunkFilter, DocumentType, KnowledgeChunk
from lexbrief.utils.errors import DocumentStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/knowledge.db")

_CREATE_CHUNKS_SQL = """\
CREATE TABLE IF NOT EXISTS knowledge_chunks (
    seq                 INTEGER PRIMARY KEY AUTOINCREMENT,
    id                  TEXT    NOT NULL UNIQUE,
    title               TEXT    NOT NULL,
    content             TEXT    NOT NULL,
    category            TEXT    NOT NULL,
    tags                TEXT    NOT NULL DEFAULT '[]',
    document_type       TEXT    NOT NULL,
    embedding           TEXT,
    embedded_chars      INTEGER NOT NULL DEFAULT 0,
    embedding_truncated INTEGER NOT NULL DEFAULT 0,
    source_file         TEXT,
    source_size         INTEGER,
    owner_id            TEXT,
    created_at          TEXT    NOT NULL,
    updated_at          TEXT    NOT NULL
);
"""

_CREATE_BRIEFS_SQL = """\
CREATE TABLE IF NOT EXISTS briefs (
    id           TEXT    PRIMARY KEY,
    title        TEXT    NOT NULL,
    slug         TEXT    NOT NULL DEFAULT '',
    content      TEXT    NOT NULL,
    is_published INTEGER NOT NULL DEFAULT 1,
    created_at   TEXT    NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_type ON knowledge_chunks(document_type);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_category ON knowledge_chunks(category);",
    "CREATE INDEX IF NOT EXISTS idx_briefs_published ON briefs(is_published);",
]

_CHUNK_COLUMNS = (
    "id, title, content, category, tags, document_type, embedding, embedded_chars, "
    "embedding_truncated, source_file, source_size, owner_id, created_at, updated_at"
)

_INSERT_CHUNK_SQL = f"""\
INSERT INTO knowledge_chunks ({_CHUNK_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_UPDATE_CHUNK_SQL = """\
UPDATE knowledge_chunks
SET title = ?, content = ?, category = ?, tags = ?, embedding = ?,
    embedded_chars = ?, embedding_truncated = ?, updated_at = ?
WHERE id = ?;
"""

_UPSERT_BRIEF_SQL = """\
INSERT INTO briefs (id, title, slug, content, is_published, created_at)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET title        = excluded.title,
              slug         = excluded.slug,
              content      = excluded.content,
              is_published = excluded.is_published;
"""


def _chunk_to_row(chunk: KnowledgeChunk) -> tuple:
    return (
        chunk.id,
        chunk.title,
        chunk.content,
        chunk.category,
        json.dumps(chunk.tags),
        chunk.document_type.value,
        json.dumps(chunk.embedding) if chunk.embedding is not None else None,
        chunk.embedded_chars,
        int(chunk.embedding_truncated),
        chunk.source_file,
        chunk.source_size,
        chunk.owner_id,
        chunk.created_at.isoformat(),
        chunk.updated_at.isoformat(),
    )


def _row_to_chunk(row: aiosqlite.Row) -> KnowledgeChunk:
    r = dict(row)
    return KnowledgeChunk(
        id=r["id"],
        title=r["title"],
        content=r["content"],
        category=r["category"],
        tags=json.loads(r["tags"] or "[]"),
        document_type=DocumentType(r["document_type"]),
        embedding=json.loads(r["embedding"]) if r["embedding"] else None,
        embedded_chars=r["embedded_chars"],
        embedding_truncated=bool(r["embedding_truncated"]),
        source_file=r["source_file"],
        source_size=r["source_size"],
        owner_id=r["owner_id"],
        created_at=datetime.fromisoformat(r["created_at"]),
        updated_at=datetime.fromisoformat(r["updated_at"]),
    )


class SQLiteDocumentStore(IDocumentStore, IBriefProvider):
    """SQLite-backed chunk and brief persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_CHUNKS_SQL)
            await db.execute(_CREATE_BRIEFS_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_store_initialized", path=str(self._db_path))

    # -- IDocumentStore --------------------------------------------------

    async def insert(self, chunk: KnowledgeChunk) -> str:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_INSERT_CHUNK_SQL, _chunk_to_row(chunk))
                await db.commit()
        except sqlite3.IntegrityError as exc:
            raise DocumentStoreError(
                f"Chunk {chunk.id} already exists",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("chunk_inserted", chunk_id=chunk.id, document_type=chunk.document_type.value)
        return chunk.id

    async def get(self, chunk_id: str) -> KnowledgeChunk | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM knowledge_chunks WHERE id = ?",
                (chunk_id,),
            )
            row = await cursor.fetchone()
        return _row_to_chunk(row) if row else None

    async def list_all(self, filters: ChunkFilter | None = None) -> list[KnowledgeChunk]:
        clauses: list[str] = []
        params: list[Any] = []
        if filters is not None:
            if filters.document_type is not None:
                clauses.append("document_type = ?")
                params.append(filters.document_type.value)
            if filters.category is not None:
                clauses.append("category = ?")
                params.append(filters.category)
            if filters.owner_id is not None:
                clauses.append("owner_id = ?")
                params.append(filters.owner_id)
            if filters.has_embedding is True:
                clauses.append("embedding IS NOT NULL")
            elif filters.has_embedding is False:
                clauses.append("embedding IS NULL")

        sql = f"SELECT {_CHUNK_COLUMNS} FROM knowledge_chunks"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY seq"

        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()

        chunks = [_row_to_chunk(r) for r in rows]
        # Tags live in a JSON column; the remaining predicates run in Python.
        if filters is not None:
            chunks = [c for c in chunks if filters.matches(c)]
        return chunks

    async def update(self, chunk_id: str, fields: dict[str, Any]) -> KnowledgeChunk | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM knowledge_chunks WHERE id = ?",
                (chunk_id,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            updated = apply_chunk_update(
                _row_to_chunk(row), fields, provider_name=self.get_provider_name()
            )
            await db.execute(
                _UPDATE_CHUNK_SQL,
                (
                    updated.title,
                    updated.content,
                    updated.category,
                    json.dumps(updated.tags),
                    json.dumps(updated.embedding) if updated.embedding is not None else None,
                    updated.embedded_chars,
                    int(updated.embedding_truncated),
                    updated.updated_at.isoformat(),
                    chunk_id,
                ),
            )
            await db.commit()
        logger.debug("chunk_updated", chunk_id=chunk_id, fields=sorted(fields))
        return updated

    async def delete(self, chunk_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM knowledge_chunks WHERE id = ?", (chunk_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("chunk_deleted", chunk_id=chunk_id)
        return deleted

    # -- IBriefProvider --------------------------------------------------

    async def list_published_briefs(self) -> list[Brief]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT id, title, slug, content, is_published, created_at "
                "FROM briefs WHERE is_published = 1 ORDER BY created_at",
            )
            rows = await cursor.fetchall()
        return [
            Brief(
                id=r["id"],
                title=r["title"],
                slug=r["slug"],
                content=r["content"],
                is_published=bool(r["is_published"]),
                created_at=datetime.fromisoformat(r["created_at"]),
            )
            for r in rows
        ]

    async def add_brief(self, brief: Brief) -> str:
        """Insert or replace a brief."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPSERT_BRIEF_SQL,
                (
                    brief.id,
                    brief.title,
                    brief.slug,
                    brief.content,
                    int(brief.is_published),
                    brief.created_at.isoformat(),
                ),
            )
            await db.commit()
        return brief.id

    def get_provider_name(self) -> str:
        return "sqlite_document_store"
