"""Collaborator protocols consumed by the interpreter and the bridge."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

ChatRole = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class ChatTurn:
    """One entry of the conversation log used to ground chat completions."""

    role: ChatRole
    content: str
    name: str | None = None

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name:
            message["name"] = self.name
        return message


@runtime_checkable
class ChatProvider(Protocol):
    """Generates a reply from an ordered conversation log."""

    async def complete(self, turns: Sequence[ChatTurn]) -> str: ...


@runtime_checkable
class ToolHandle(Protocol):
    """A resolved, invokable tool."""

    @property
    def name(self) -> str: ...

    @property
    def parameters(self) -> dict[str, Any]: ...

    async def invoke(self, arguments: dict[str, Any]) -> Any: ...


@runtime_checkable
class ToolProvider(Protocol):
    """Resolves ``namespace.function`` recipients to tools."""

    def resolve(self, namespace: str, function: str) -> ToolHandle | None: ...
