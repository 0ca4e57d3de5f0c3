"""Abstract base class for LLM completion providers.

Used only by the question-answering loop.  Implementations wrap an
OpenAI-compatible chat API.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chunkwise.models.chat import ChatMessage


# Concrete implementation: OpenAILLMProvider (chunkwise/providers/llm/)
class ILLMProvider(ABC):
    """Contract for chat-completion services."""

    @abstractmethod
    async def complete(self, prompt: str, history: list[ChatMessage] | None = None) -> str:
        """Generate a completion for *prompt* following *history*.

        Parameters
        ----------
        prompt:
            The fully rendered prompt for this turn.
        history:
            Earlier conversation turns, oldest first.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        chunkwise.utils.errors.RateLimitError
            If the provider signals quota exhaustion.
        chunkwise.utils.errors.LLMError
            If the call fails or the response is empty.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
