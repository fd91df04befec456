"""Abstract base class for chat-completion providers."""

from abc import ABC, abstractmethod
from typing import Any


class ChatProvider(ABC):
    """Pluggable LLM backend.

    The engine only needs chat completions; free-text generation stays behind
    this interface so the summary generator can be tested without a network.
    """

    @abstractmethod
    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        """Generate a chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            **kwargs: Additional provider-specific parameters.

        Returns:
            Generated chat response.
        """
        pass
