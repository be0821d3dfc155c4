"""Republic integration helpers."""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger
from republic import LLM

from harmonia.config import Settings
from harmonia.providers import ChatTurn


def build_llm(settings: Settings) -> LLM:
    """Build Republic LLM client configured for Harmonia."""

    return LLM(
        settings.model,
        api_key=settings.api_key,
        api_base=settings.api_base,
    )


class RepublicChatProvider:
    """Chat provider backed by a republic ``LLM``."""

    def __init__(self, llm: LLM, *, max_tokens: int | None = None) -> None:
        self._llm = llm
        self._max_tokens = max_tokens

    async def complete(self, turns: Sequence[ChatTurn]) -> str:
        messages = [turn.to_message() for turn in turns]
        logger.info("chat.complete.start turns={}", len(messages))
        reply = await self._llm.chat_async(messages=messages, max_tokens=self._max_tokens)
        text = reply if isinstance(reply, str) else str(reply or "")
        logger.info("chat.complete.end chars={}", len(text))
        return text
