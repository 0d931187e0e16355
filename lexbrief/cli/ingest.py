"""Command-line interface for managing the lexbrief knowledge store.

Usage::

    python -m lexbrief.cli upload --file contract.pdf --strategy section \\
        --category conveyancing --tag leasehold

    python -m lexbrief.cli manual --title "Lease registration" \\
        --content-file notes.txt

    python -m lexbrief.cli import --file knowledge.json

    python -m lexbrief.cli list --type UPLOADED_PDF

    python -m lexbrief.cli delete <chunk-id>

    python -m lexbrief.cli ask "Can a foreigner own land?" --role BUYER

Embedding credentials come from the environment / ``.env`` (see
:class:`lexbrief.config.settings.Settings`).  Tunables come from
``config/config.yaml`` with explicitly set environment values on top.
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import Any

from lexbrief.config.loader import load_config
from lexbrief.config.settings import Settings
from lexbrief.models.knowledge import ChunkFilter, ChunkingStrategy, DocumentType, UserRole
from lexbrief.services.ingestion.knowledge_import import (
    parse_csv_knowledge,
    parse_json_knowledge,
)
from lexbrief.utils.errors import LexBriefError

# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


def _guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


async def _handle_upload(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Ingest one document file."""
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    mime_type = args.mime_type or _guess_mime_type(path)
    print(f"Ingesting {path.name} ({mime_type}) with strategy '{args.strategy}'")

    result = await services["ingestion_service"].ingest_upload(
        data=path.read_bytes(),
        mime_type=mime_type,
        file_name=path.name,
        category=args.category,
        tags=args.tag or [],
        strategy=args.strategy,
        owner_id=args.owner,
    )

    print("\nIngestion complete:")
    print(f"  Title:            {result.document_title}")
    print(f"  Extraction:       {result.extraction_method}")
    print(f"  Chunks created:   {result.chunks_created}")
    print(f"  Truncated embeds: {result.truncated_chunks}")
    print(f"  Time:             {result.ingestion_time:.2f}s")
    for chunk in result.chunks:
        flag = " [truncated]" if chunk.truncated else ""
        print(f"    {chunk.id}  {chunk.title} ({chunk.content_chars} chars){flag}")
    return 0


async def _handle_manual(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Create a manual knowledge entry."""
    if args.content_file:
        content_path = Path(args.content_file)
        if not content_path.is_file():
            print(f"Error: file not found: {content_path}", file=sys.stderr)
            return 1
        content = content_path.read_text(encoding="utf-8")
    else:
        content = args.content or ""

    chunk = await services["ingestion_service"].create_manual_entry(
        title=args.title,
        content=content,
        category=args.category,
        tags=args.tag or [],
        owner_id=args.owner,
    )
    print(f"Created manual entry {chunk.id}: {chunk.title}")
    return 0


async def _handle_import(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Bulk-import knowledge items from a JSON or CSV file."""
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    text = path.read_text(encoding="utf-8")
    fmt = args.format or ("csv" if path.suffix.lower() == ".csv" else "json")
    items = parse_csv_knowledge(text) if fmt == "csv" else parse_json_knowledge(text)

    stored, invalid = await services["ingestion_service"].import_entries(
        items, owner_id=args.owner
    )

    print(f"Imported {len(stored)} of {len(items)} items")
    for item, errors in invalid:
        print(f"  Rejected '{item.title or '(untitled)'}': {'; '.join(errors)}")
    not_embedded = [s for s in stored if not s.embedded_chars]
    if not_embedded:
        print(f"  {len(not_embedded)} stored without embedding (excluded from search)")
    return 0 if not invalid else 2


async def _handle_list(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """List stored chunks."""
    filters = ChunkFilter(
        document_type=DocumentType(args.type) if args.type else None,
        category=args.category,
        tag=args.tag,
    )
    chunks = await services["ingestion_service"].list_chunks(filters)
    if not chunks:
        print("No chunks stored.")
        return 0

    for chunk in chunks:
        embedded = "yes" if chunk.has_embedding else "no"
        print(
            f"{chunk.id}  [{chunk.document_type.value}] {chunk.title} "
            f"(category={chunk.category}, chars={len(chunk.content)}, embedded={embedded})"
        )
    print(f"\n{len(chunks)} chunk(s)")
    return 0


async def _handle_delete(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Delete one chunk by id."""
    deleted = await services["ingestion_service"].delete_chunk(args.chunk_id)
    if not deleted:
        print(f"Chunk {args.chunk_id} not found.", file=sys.stderr)
        return 1
    print(f"Deleted {args.chunk_id}")
    return 0


async def _handle_ask(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Print the knowledge context composed for a question."""
    context = await services["composer"].compose(args.query, args.role)
    if not context:
        print("(no relevant knowledge found)")
    else:
        print(context)
    return 0


_HANDLERS = {
    "upload": _handle_upload,
    "manual": _handle_manual,
    "import": _handle_import,
    "list": _handle_list,
    "delete": _handle_delete,
    "ask": _handle_ask,
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the knowledge CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m lexbrief.cli",
        description="Manage the lexbrief knowledge store.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Knowledge commands")

    # -- upload --
    upload_parser = subparsers.add_parser("upload", help="Ingest a PDF, DOCX or text file")
    upload_parser.add_argument("--file", required=True, help="Path to the document")
    upload_parser.add_argument(
        "--strategy",
        default=ChunkingStrategy.CHUNK.value,
        choices=[s.value for s in ChunkingStrategy],
        help="Chunking strategy (default: chunk)",
    )
    upload_parser.add_argument(
        "--category", default="legal-document", help="Category (default: legal-document)"
    )
    upload_parser.add_argument("--tag", action="append", help="Tag (repeatable)")
    upload_parser.add_argument("--mime-type", dest="mime_type", help="Override MIME type")
    upload_parser.add_argument("--owner", help="Uploader id recorded on each chunk")

    # -- manual --
    manual_parser = subparsers.add_parser("manual", help="Create a manual knowledge entry")
    manual_parser.add_argument("--title", required=True, help="Entry title")
    content_group = manual_parser.add_mutually_exclusive_group(required=True)
    content_group.add_argument("--content", help="Entry text")
    content_group.add_argument("--content-file", dest="content_file", help="Read text from file")
    manual_parser.add_argument("--category", default="general", help="Category")
    manual_parser.add_argument("--tag", action="append", help="Tag (repeatable)")
    manual_parser.add_argument("--owner", help="Author id")

    # -- import --
    import_parser = subparsers.add_parser("import", help="Bulk-import JSON or CSV knowledge")
    import_parser.add_argument("--file", required=True, help="Path to the JSON/CSV file")
    import_parser.add_argument(
        "--format", choices=["json", "csv"], help="Input format (default: from extension)"
    )
    import_parser.add_argument("--owner", help="Author id")

    # -- list --
    list_parser = subparsers.add_parser("list", help="List stored chunks")
    list_parser.add_argument(
        "--type", choices=[t.value for t in DocumentType], help="Filter by document type"
    )
    list_parser.add_argument("--category", help="Filter by category")
    list_parser.add_argument("--tag", help="Filter by tag")

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete a chunk")
    delete_parser.add_argument("chunk_id", help="Chunk id")

    # -- ask --
    ask_parser = subparsers.add_parser("ask", help="Show the context composed for a question")
    ask_parser.add_argument("query", help="The question")
    ask_parser.add_argument(
        "--role",
        default=UserRole.BUYER.value,
        choices=[r.value for r in UserRole],
        help="Caller role (default: BUYER)",
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run(
    args: argparse.Namespace, app_settings: Settings, config: dict[str, Any] | None = None
) -> int:
    from lexbrief.main import build_services

    try:
        services = await build_services(app_settings, config)
        return await _HANDLERS[args.command](args, services)
    except LexBriefError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses the subcommand, reads Settings from the environment / .env file,
    builds the services and dispatches to the handler.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    config = load_config(settings=app_settings)

    from lexbrief.main import init_logging

    init_logging(app_settings, config)
    sys.exit(asyncio.run(_run(args, app_settings, config)))


if __name__ == "__main__":
    main()
