"""Text generation adapter.

Core code depends only on ``TextGenerator.generate(prompt) -> str``; the
LangChain/OpenAI implementation is created lazily so the server starts
without an API key.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from langchain_core.messages import HumanMessage

from diffgate.core.errors import GenerationError
from diffgate.services.ai.normalize import normalize_to_text
from diffgate.utils.logger import get_logger

logger = get_logger("llm.generator")


class TextGenerator(ABC):
    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return free text for ``prompt``; raise GenerationError on failure."""


class ChatOpenAIGenerator(TextGenerator):
    """Generator backed by ``langchain_openai.ChatOpenAI``."""

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        base_url: str | None = None,
        options: dict[str, Any] | None = None,
    ):
        self.model = model
        self._api_key = api_key
        self._base_url = base_url
        self._options = options or {}
        self._llm: Any = None

    def _get_llm(self) -> Any:
        if self._llm is None:
            from langchain_openai import ChatOpenAI

            kwargs: dict[str, Any] = {
                "model": self.model,
                "api_key": self._api_key,
                **self._options,
            }
            if self._base_url:
                kwargs["base_url"] = self._base_url
            self._llm = ChatOpenAI(**kwargs)
        return self._llm

    async def generate(self, prompt: str) -> str:
        try:
            response = await self._get_llm().ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            logger.error("Text generation failed", model=self.model, error=str(e))
            raise GenerationError(f"Text generation failed: {e}") from e
        text = normalize_to_text(response)
        if text is None:
            raise GenerationError("Text generation returned no text")
        return text
