"""OpenAI chat provider."""

import logging
from typing import Any

from openai import OpenAI

from client_workflow_engine.llm.provider import ChatProvider

logger = logging.getLogger(__name__)


class OpenAIChatProvider(ChatProvider):
    """Chat completions through the OpenAI API."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        client: OpenAI | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: OpenAI API key.
            model: Chat model name.
            temperature: Default sampling temperature.
            client: Pre-built client (tests inject a fake here).

        Raises:
            ValueError: If API key is not provided.
        """
        if not api_key and client is None:
            raise ValueError("OpenAI API key is required")

        self.client = client or OpenAI(api_key=api_key)
        self.model = model
        self.temperature = temperature

        logger.info(f"OpenAI provider initialized with model: {self.model}")

    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        temp = temperature if temperature is not None else self.temperature

        logger.debug(f"Generating chat completion with {len(messages)} messages")

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,  # type: ignore
            max_tokens=max_tokens,
            temperature=temp,
            **kwargs,
        )

        content = response.choices[0].message.content or ""
        logger.debug(f"Generated {len(content)} characters")

        return content
