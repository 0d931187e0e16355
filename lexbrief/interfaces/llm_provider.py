"""Abstract base class for chat-completion providers.

lexbrief only uses text generation for one job: condensing an uploaded
document into a summary chunk under the ``summarize`` and ``hybrid``
chunking strategies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAILLMProvider
# Located in: lexbrief/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the summarizer."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the actual request or data.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        lexbrief.utils.errors.LLMError
            If the API call fails or returns an invalid response.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has credentials configured."""
