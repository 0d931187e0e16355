"""Paragraph-preserving text chunking and section detection.

Splits normalized document text into segments sized for the embedding
gateway.  Chunk boundaries always align with paragraph breaks (blank
lines), so no segment starts or ends mid-paragraph, and joining the
segments with blank lines reproduces the document's paragraph sequence.

Segments carry no overlap.  A paragraph longer than the budget becomes a
segment of its own; the embedding gateway's truncation is the backstop
for its vector, while the stored content keeps the full paragraph.

Section detection recognizes the headings common in legal documents:
numbered clauses (``1.``, ``2.3``), ``SECTION n``, ``ARTICLE n``,
``Chapter n``, ``PART n`` and all-caps labels ending in ``:``.
"""

from __future__ import annotations

import re

import structlog

from lexbrief.models.knowledge import ChunkingStrategy, Section, Segment

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MAX_CHUNK_CHARS = 5000
MAIN_CONTENT = "Main Content"
MIN_SECTION_CHARS = 100
_HEADING_MAX_CHARS = 50

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

_HEADING_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^(?:SECTION|Section)\s+\d+"),
    re.compile(r"^(?:ARTICLE|Article)\s+\d+"),
    re.compile(r"^Chapter\s+\d+", re.IGNORECASE),
    re.compile(r"^PART\s+[IVXLCDM\d]+\b"),
    re.compile(r"^\d+(?:\.\d+)*\.\s+\S"),
    re.compile(r"^\d+(?:\.\d+)+\s+\S"),
    re.compile(r"^[A-Z][A-Z\s]{3,}:"),
]


def split_paragraphs(text: str) -> list[str]:
    """Split *text* on blank lines, discarding empty paragraphs."""
    parts = _PARAGRAPH_BREAK.split(text or "")
    return [p.strip() for p in parts if p.strip()]


def is_heading(line: str) -> bool:
    """Return True if *line* looks like a section heading."""
    stripped = line.strip()
    return bool(stripped) and any(p.match(stripped) for p in _HEADING_PATTERNS)


class TextChunker:
    """Splits text into paragraph-aligned segments and detects sections.

    Parameters
    ----------
    max_chunk_chars:
        Default character budget per segment (about 2000 tokens at the
        gateway's 2.5 chars/token estimate).
    """

    def __init__(self, max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS) -> None:
        if max_chunk_chars <= 0:
            raise ValueError("max_chunk_chars must be positive")
        self._max_chunk_chars = max_chunk_chars

    # ------------------------------------------------------------------
    # Uniform chunking
    # ------------------------------------------------------------------

    def chunk(self, text: str, max_chunk_chars: int | None = None) -> list[str]:
        """Greedily pack paragraphs into segments of at most *max_chunk_chars*.

        A new segment starts when appending the next paragraph (joined with a
        blank line) would exceed the budget.  A single paragraph longer than
        the budget is emitted alone.

        Returns
        -------
        list[str]
            Segments in source order.  Empty input returns an empty list.
        """
        budget = max_chunk_chars or self._max_chunk_chars
        segments: list[str] = []
        current: list[str] = []
        current_len = 0

        for para in split_paragraphs(text):
            added = len(para) + (2 if current else 0)
            if current and current_len + added > budget:
                segments.append("\n\n".join(current))
                current = []
                current_len = 0
                added = len(para)
            current.append(para)
            current_len += added

        if current:
            segments.append("\n\n".join(current))

        oversized = sum(1 for s in segments if len(s) > budget)
        if oversized:
            logger.info("oversized_paragraph_segments", count=oversized, budget=budget)
        logger.debug("chunking_complete", num_segments=len(segments), budget=budget)
        return segments

    # ------------------------------------------------------------------
    # Section detection
    # ------------------------------------------------------------------

    def split_sections(self, text: str) -> list[Section]:
        """Split *text* at heading lines.

        Text before the first heading becomes a "Main Content" section.
        Sections shorter than 100 characters are merged into the following
        section (the last one merges backwards).  Text with no headings
        yields a single "Main Content" section.
        """
        if not text or not text.strip():
            return []

        raw: list[tuple[str, list[str]]] = []
        heading = MAIN_CONTENT
        body: list[str] = []
        for line in text.split("\n"):
            if is_heading(line):
                if any(b.strip() for b in body):
                    raw.append((heading, body))
                heading = line.strip()[:_HEADING_MAX_CHARS].strip()
                body = [line]
            else:
                body.append(line)
        if any(b.strip() for b in body):
            raw.append((heading, body))

        sections = [Section(heading=h, content="\n".join(b).strip()) for h, b in raw]
        return self._merge_short_sections(sections)

    @staticmethod
    def _merge_short_sections(sections: list[Section]) -> list[Section]:
        merged: list[Section] = []
        pending: Section | None = None
        for section in sections:
            if pending is not None:
                section = Section(
                    heading=section.heading,
                    content=f"{pending.content}\n\n{section.content}",
                )
                pending = None
            if len(section.content) < MIN_SECTION_CHARS:
                pending = section
                continue
            merged.append(section)

        if pending is not None:
            if merged:
                last = merged.pop()
                merged.append(
                    Section(heading=last.heading, content=f"{last.content}\n\n{pending.content}")
                )
            else:
                merged.append(pending)
        return merged

    # ------------------------------------------------------------------
    # Strategy dispatch
    # ------------------------------------------------------------------

    def segment(
        self,
        text: str,
        strategy: ChunkingStrategy | str,
        max_chunk_chars: int | None = None,
        summary: str | None = None,
    ) -> list[Segment]:
        """Form labelled segments for *strategy*.

        ``chunk``
            Uniform segments labelled "Part i" (unlabelled when only one).
        ``summarize``
            A single "Summary" segment holding *summary*.
        ``section``
            One segment per detected section, labelled with its heading;
            sections over budget are further split into "heading (i)" parts.
        ``hybrid``
            The summary segment followed by the uniform segments.
        """
        strategy = ChunkingStrategy(strategy)
        budget = max_chunk_chars or self._max_chunk_chars

        if strategy == ChunkingStrategy.CHUNK:
            return self._uniform_segments(text, budget)

        if strategy == ChunkingStrategy.SECTION:
            segments: list[Segment] = []
            for section in self.split_sections(text):
                if len(section.content) <= budget:
                    segments.append(
                        Segment(
                            label=section.heading,
                            text=section.content,
                            kind="section",
                            heading=section.heading,
                        )
                    )
                    continue
                parts = self.chunk(section.content, budget)
                for i, part in enumerate(parts, start=1):
                    segments.append(
                        Segment(
                            label=f"{section.heading} ({i})",
                            text=part,
                            kind="section",
                            heading=section.heading,
                        )
                    )
            return segments

        summary_segments = (
            [Segment(label="Summary", text=summary, kind="summary")] if summary else []
        )
        if strategy == ChunkingStrategy.SUMMARIZE:
            return summary_segments
        return summary_segments + self._uniform_segments(text, budget)

    def _uniform_segments(self, text: str, budget: int) -> list[Segment]:
        parts = self.chunk(text, budget)
        if len(parts) == 1:
            return [Segment(label="", text=parts[0], kind="chunk")]
        return [
            Segment(label=f"Part {i}", text=part, kind="chunk")
            for i, part in enumerate(parts, start=1)
        ]
