"""Unit tests for bulk knowledge import parsing and validation."""

from __future__ import annotations

import json

from lexbrief.models.knowledge import ImportedKnowledge
from lexbrief.services.ingestion.knowledge_import import (
    MAX_IMPORT_CONTENT_CHARS,
    parse_csv_knowledge,
    parse_json_knowledge,
    validate_knowledge_items,
)


class TestParseJson:
    def test_defaults_filled(self) -> None:
        text = json.dumps(
            [
                {"title": "Usufruct", "content": "Lifetime right of use.", "tags": ["thai", "rights"]},
                {"content": "No title here.", "tags": "not-a-list", "source": "handbook"},
                "not an object",
            ]
        )

        items = parse_json_knowledge(text)

        assert len(items) == 2
        assert items[0].category == "general"
        assert items[0].tags == ["thai", "rights"]
        assert items[0].source == "bulk-import"
        assert items[1].title == "Imported Item 2"
        assert items[1].tags == []
        assert items[1].source == "handbook"

    def test_malformed(self) -> None:
        assert parse_json_knowledge("{not json") == []
        assert parse_json_knowledge('{"title": "object, not array"}') == []


class TestParseCsv:
    def test_rows(self) -> None:
        text = (
            "Title,Content,Category,Tags\n"
            'Superficies,"Right to own buildings on another\'s land, up to 30 years",rights,thai; land\n'
            ",Missing title,general,\n"
            "\n"
            "Servitude,Easement over neighbouring land,,\n"
        )

        items = parse_csv_knowledge(text)

        assert [i.title for i in items] == ["Superficies", "Servitude"]
        assert items[0].content.endswith("up to 30 years")
        assert items[0].tags == ["thai", "land"]
        assert items[1].category == "general"
        assert all(i.source == "csv-import" for i in items)

    def test_quoted_content_keeps_paragraph_breaks(self) -> None:
        text = (
            "title,content\n"
            '"Lease registration","Leases over three years must be registered.\n'
            "\n"
            'Unregistered leases bind for three years only."\n'
            "\n"
            "Usufruct,Lifetime right to use land\n"
        )

        items = parse_csv_knowledge(text)

        assert [i.title for i in items] == ["Lease registration", "Usufruct"]
        assert items[0].content == (
            "Leases over three years must be registered.\n\n"
            "Unregistered leases bind for three years only."
        )

    def test_header_only(self) -> None:
        assert parse_csv_knowledge("title,content\n") == []
        assert parse_csv_knowledge("") == []


class TestValidate:
    def test_split(self) -> None:
        good = ImportedKnowledge(title="T", content="C", category="c")
        blank = ImportedKnowledge(title=" ", content="", category="")
        huge = ImportedKnowledge(title="T", content="x" * (MAX_IMPORT_CONTENT_CHARS + 1))

        valid, invalid = validate_knowledge_items([good, blank, huge])

        assert valid == [good]
        assert invalid[0][1] == ["Title is required", "Content is required", "Category is required"]
        assert invalid[1][1] == ["Content is too long (max 10,000 characters)"]
