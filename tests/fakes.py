"""In-memory chat and tool providers for tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from harmonia.providers import ChatTurn


class FakeChat:
    def __init__(self, reply: str = "summary") -> None:
        self.reply = reply
        self.calls: list[list[ChatTurn]] = []

    async def complete(self, turns: Sequence[ChatTurn]) -> str:
        self.calls.append(list(turns))
        return self.reply


class FakeToolHandle:
    def __init__(self, name: str, handler: Callable[..., Any], parameters: dict[str, Any] | None = None) -> None:
        self._name = name
        self._handler = handler
        self._parameters = parameters or {"type": "object", "properties": {}}
        self.calls: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def parameters(self) -> dict[str, Any]:
        return self._parameters

    async def invoke(self, arguments: dict[str, Any]) -> Any:
        self.calls.append(dict(arguments))
        return self._handler(**arguments)


class FakeTools:
    def __init__(self, *handles: FakeToolHandle) -> None:
        self.handles = {handle.name: handle for handle in handles}
        self.resolved: list[tuple[str, str]] = []

    def resolve(self, namespace: str, function: str) -> FakeToolHandle | None:
        self.resolved.append((namespace, function))
        return self.handles.get(f"{namespace}.{function}")


