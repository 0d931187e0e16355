"""Document summaries for the ``summarize`` and ``hybrid`` strategies.

A summary is a single extra chunk that gives retrieval a whole-document
view of an upload.  Generation goes through the injected
:class:`~lexbrief.interfaces.llm_provider.ILLMProvider`; when no provider
is configured, the content is too short, or the call fails, a plain
extractive fallback is used instead.  :meth:`DocumentSummarizer.summarize`
never raises.
"""

from __future__ import annotations

import structlog

from lexbrief.interfaces.llm_provider import ILLMProvider
from lexbrief.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

MAX_SUMMARY_INPUT_CHARS = 6000
MIN_SUMMARY_INPUT_CHARS = 100

_SYSTEM_PROMPT = (
    "You are a legal document analyst. Create concise but comprehensive summaries "
    "of legal documents, highlighting key points, requirements, and important legal "
    "concepts."
)

_USER_PROMPT = (
    'Please create a comprehensive summary of this legal document titled "{title}". '
    "Include key points, main sections, and important legal concepts:\n\n{content}"
)


def fallback_summary(title: str, content: str, words: int = 100) -> str:
    """Return ``"<title>: <first *words* words>..."``."""
    return f"{title}: {' '.join(content.split()[:words])}..."


class DocumentSummarizer:
    """Produces a summary text for an uploaded document."""

    def __init__(
        self,
        llm: ILLMProvider | None = None,
        max_input_chars: int = MAX_SUMMARY_INPUT_CHARS,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> None:
        self._llm = llm
        self._max_input_chars = max_input_chars
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def uses_llm(self) -> bool:
        return self._llm is not None

    async def summarize(self, title: str, content: str) -> str:
        if len(content) > self._max_input_chars:
            excerpt = content[: self._max_input_chars] + "..."
        else:
            excerpt = content

        if len(excerpt.strip()) < MIN_SUMMARY_INPUT_CHARS:
            return fallback_summary(title, content, words=50)

        if self._llm is None:
            return fallback_summary(title, content)

        try:
            summary = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=_USER_PROMPT.format(title=title, content=excerpt),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except LLMError as exc:
            logger.warning(
                "summary_generation_failed",
                title=title,
                provider=self._llm.get_provider_name(),
                error=str(exc),
            )
            return fallback_summary(title, content)

        summary = summary.strip()
        if not summary:
            return fallback_summary(title, content)
        logger.info("summary_generated", title=title, chars=len(summary))
        return summary
