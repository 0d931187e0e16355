"""Parsing and validation for bulk knowledge imports.

Hand-authored knowledge arrives as JSON (an array of objects) or CSV (a
header row naming ``title``, ``content``, ``category`` and ``tags``, with
tags separated by ``;``).  Parsing is forgiving: malformed input yields an
empty list and a log line rather than an exception.  Validation then splits
the parsed items into storable and rejected ones, with reasons.
"""

from __future__ import annotations

import csv
import io
import json

import structlog

from lexbrief.models.knowledge import ImportedKnowledge

logger = structlog.get_logger(logger_name=__name__)

MAX_IMPORT_CONTENT_CHARS = 10_000


def parse_json_knowledge(text: str) -> list[ImportedKnowledge]:
    """Parse a JSON array of knowledge objects.

    Missing titles become ``"Imported Item <n>"``; missing categories become
    ``"general"``; non-list tags are dropped.  Anything other than a JSON
    array yields an empty list.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("knowledge_json_parse_failed", error=str(exc))
        return []
    if not isinstance(data, list):
        logger.warning("knowledge_json_not_array", type=type(data).__name__)
        return []

    items: list[ImportedKnowledge] = []
    for index, raw in enumerate(data, start=1):
        if not isinstance(raw, dict):
            continue
        tags = raw.get("tags")
        items.append(
            ImportedKnowledge(
                title=str(raw.get("title") or f"Imported Item {index}"),
                content=str(raw.get("content") or ""),
                category=str(raw.get("category") or "general"),
                tags=[str(t) for t in tags] if isinstance(tags, list) else [],
                source=str(raw.get("source") or "bulk-import"),
            )
        )
    return items


def parse_csv_knowledge(text: str) -> list[ImportedKnowledge]:
    """Parse CSV knowledge with a header row.

    Rows without both a title and content are skipped.  Header names are
    matched case-insensitively; unknown columns are ignored.
    """
    try:
        reader = csv.reader(io.StringIO(text or ""))
        # Blank lines come back as empty rows; quoted fields keep their own.
        rows = [row for row in reader if any(cell.strip() for cell in row)]
    except csv.Error as exc:
        logger.warning("knowledge_csv_parse_failed", error=str(exc))
        return []
    if len(rows) < 2:
        return []

    headers = [h.strip().lower() for h in rows[0]]
    items: list[ImportedKnowledge] = []
    for values in rows[1:]:
        record = {
            header: (values[i].strip() if i < len(values) else "")
            for i, header in enumerate(headers)
        }
        title = record.get("title", "")
        content = record.get("content", "")
        if not title or not content:
            continue
        items.append(
            ImportedKnowledge(
                title=title,
                content=content,
                category=record.get("category") or "general",
                tags=[t.strip() for t in record.get("tags", "").split(";") if t.strip()],
                source="csv-import",
            )
        )
    return items


def validate_knowledge_items(
    items: list[ImportedKnowledge],
) -> tuple[list[ImportedKnowledge], list[tuple[ImportedKnowledge, list[str]]]]:
    """Split *items* into ``(valid, invalid)``; invalid entries carry their errors."""
    valid: list[ImportedKnowledge] = []
    invalid: list[tuple[ImportedKnowledge, list[str]]] = []

    for item in items:
        errors: list[str] = []
        if not item.title.strip():
            errors.append("Title is required")
        if not item.content.strip():
            errors.append("Content is required")
        if len(item.content) > MAX_IMPORT_CONTENT_CHARS:
            errors.append(f"Content is too long (max {MAX_IMPORT_CONTENT_CHARS:,} characters)")
        if not item.category.strip():
            errors.append("Category is required")

        if errors:
            invalid.append((item, errors))
        else:
            valid.append(item)
    return valid, invalid
