"""Abstract base class for the published-brief repository."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lexbrief.models.knowledge import Brief


class IBriefProvider(ABC):
    """Read access to hand-curated legal briefs.

    Briefs are authored elsewhere; composition only needs the published ones,
    which it embeds on the fly at query time.
    """

    @abstractmethod
    async def list_published_briefs(self) -> list[Brief]:
        """Return every brief with ``is_published == True``."""
