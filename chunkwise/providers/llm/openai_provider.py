"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When a custom ``openai_base_url`` is configured, the client points at that
URL instead of the default OpenAI endpoint, so any OpenAI-compatible chat
API works.

Conversation history is passed as prior chat messages; the rendered prompt
for the current turn is always the final user message.
"""

from __future__ import annotations

import openai
import structlog

from chunkwise.config.settings import Settings
from chunkwise.interfaces.llm_provider import ILLMProvider
from chunkwise.models.chat import ChatMessage, MessageRole
from chunkwise.providers.rate_limit_headers import retry_after_seconds
from chunkwise.utils.errors import ConfigurationError, LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_ROLE_MAP: dict[MessageRole, str] = {
    MessageRole.HUMAN: "user",
    MessageRole.AI: "assistant",
}


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API.

    Uses ``gpt-3.5-turbo`` at temperature 0.7 with a 500-token answer cap
    by default; all three come from :class:`Settings`.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        # The SDK rejects an empty key at construction; leave the client unset
        # so is_available() can still report the missing key.
        self._client: openai.AsyncOpenAI | None = None
        if self._api_key:
            client_kwargs: dict = {
                "api_key": self._api_key,
                "timeout": settings.openai_timeout_seconds,
                "max_retries": 0,
            }
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            self._client = openai.AsyncOpenAI(**client_kwargs)

        self._model = settings.openai_chat_model or "gpt-3.5-turbo"
        self._temperature = settings.openai_temperature
        self._max_tokens = settings.openai_max_tokens
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(self, prompt: str, history: list[ChatMessage] | None = None) -> str:
        """Generate a completion for *prompt* after the *history* turns."""
        messages = [
            {"role": _ROLE_MAP[message.role], "content": message.content}
            for message in history or []
        ]
        messages.append({"role": "user", "content": prompt})
        client = self._require_client()

        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{self._provider_label} rate limit exceeded: {exc}",
                provider_name=self.get_provider_name(),
                retry_after=retry_after_seconds(exc),
            ) from exc
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self._provider_label} timed out after {self._settings.openai_timeout_seconds}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if content is None:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=self._model,
            provider=self._provider_label,
            history_turns=len(history or []),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        """Return 'openai' or 'openai-compatible' depending on configuration."""
        return self._provider_label

    def _require_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            raise ConfigurationError(
                message="OPENAI_API_KEY is not set",
                provider_name=self.get_provider_name(),
            )
        return self._client
