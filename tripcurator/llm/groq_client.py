from __future__ import annotations

import logging

from groq import APIError, AsyncGroq

from ..errors import ConfigurationFailure, TransportFailure
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)


class GroqChatClient:
    """Thin async chat-completion wrapper returning the raw reply text."""

    def __init__(self, config: LLMConfig = DEFAULT_LLM_CONFIG) -> None:
        if not config.api_key:
            raise ConfigurationFailure("GROQ_API_KEY is not set")
        self.config = config
        self._client = AsyncGroq(api_key=config.api_key, timeout=config.timeout)

    async def complete(self, messages: list[dict[str, str]]) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                response_format={"type": "json_object"},
            )
        except APIError as exc:
            raise TransportFailure(f"groq: {exc}") from exc

        content = response.choices[0].message.content or ""
        logger.debug("groq reply (%d chars)", len(content))
        return content
