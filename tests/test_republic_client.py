from typing import Any

import pytest

from harmonia.config import Settings
from harmonia.integrations import republic_client
from harmonia.integrations.republic_client import RepublicChatProvider, build_llm
from harmonia.providers import ChatProvider, ChatTurn


class DummyLLM:
    def __init__(self, reply: Any = "hello") -> None:
        self.reply = reply
        self.calls: list[dict[str, Any]] = []

    async def chat_async(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        return self.reply


@pytest.mark.asyncio
async def test_complete_sends_turns_as_messages() -> None:
    llm = DummyLLM()
    provider = RepublicChatProvider(llm, max_tokens=64)

    reply = await provider.complete([
        ChatTurn(role="system", content="be brief"),
        ChatTurn(role="tool", content="3", name="functions.add"),
    ])

    assert reply == "hello"
    assert isinstance(provider, ChatProvider)
    assert llm.calls == [
        {
            "messages": [
                {"role": "system", "content": "be brief"},
                {"role": "tool", "content": "3", "name": "functions.add"},
            ],
            "max_tokens": 64,
        }
    ]


@pytest.mark.asyncio
async def test_complete_coerces_empty_reply() -> None:
    provider = RepublicChatProvider(DummyLLM(reply=None))

    assert await provider.complete([]) == ""


def test_build_llm_passes_settings(monkeypatch) -> None:
    captured: dict[str, Any] = {}

    def _fake_llm(model: str, **kwargs: Any) -> str:
        captured["model"] = model
        captured.update(kwargs)
        return "llm"

    monkeypatch.setattr(republic_client, "LLM", _fake_llm)
    settings = Settings(model="openai:gpt-4o", api_key="k", api_base="https://example.invalid/v1")

    assert build_llm(settings) == "llm"
    assert captured == {"model": "openai:gpt-4o", "api_key": "k", "api_base": "https://example.invalid/v1"}
