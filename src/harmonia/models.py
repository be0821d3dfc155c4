"""Envelope, message and result types of the Harmony Response Format."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from harmonia.errors import ScriptNotFoundError, StepValidationError
from harmonia.steps import Script

SCRIPT_CONTENT_TYPE = "harmony-script"
JSON_CONTENT_TYPE = "json"
STRUCTURED_CONTENT_TYPES = frozenset({JSON_CONTENT_TYPE, SCRIPT_CONTENT_TYPE})
DEFAULT_HRF_VERSION = "1.0"


class Channel(StrEnum):
    """Purpose of an assistant message."""

    ANALYSIS = "analysis"
    COMMENTARY = "commentary"
    FINAL = "final"

    @classmethod
    def _missing_(cls, value: object) -> Channel | None:
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


class Termination(StrEnum):
    """How an assistant turn ended: `<|end|>`, `<|call|>` or `<|return|>`."""

    END = "end"
    CALL = "call"
    RETURN = "return"

    @classmethod
    def _missing_(cls, value: object) -> Termination | None:
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


class Message(BaseModel):
    """One HRF message.

    Roles are kept as free-form strings so tool-named roles such as
    ``functions.getweather`` survive exactly as emitted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    role: str = ""
    channel: Channel | None = None
    recipient: str | None = None
    content_type: str | None = Field(default=None, alias="contentType")
    content: Any = None
    termination: Termination | None = None

    @property
    def is_script(self) -> bool:
        return (self.content_type or "").casefold() == SCRIPT_CONTENT_TYPE

    @property
    def text(self) -> str | None:
        """Plain-text content, or None when the content is structured."""
        return self.content if isinstance(self.content, str) else None

    def __str__(self) -> str:
        channel = self.channel.value if self.channel is not None else "-"
        suffix = f" to={self.recipient}" if self.recipient else ""
        return f"{self.role} [{channel}]{suffix}"


@dataclass
class Conversation:
    """Ordered messages produced by the wire parser."""

    messages: list[Message] = field(default_factory=list)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def __len__(self) -> int:
        return len(self.messages)


class Envelope(BaseModel):
    """Top-level HRF container: a version tag and an ordered message list."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str | None = Field(default=None, alias="HRFVersion")
    messages: list[Message] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Envelope:
        return cls.model_validate(dict(data))

    @classmethod
    def parse_json(cls, text: str) -> Envelope:
        """Decode a JSON envelope document."""
        return cls.from_dict(json.loads(text))

    @classmethod
    def from_conversation(cls, conversation: Conversation, version: str = DEFAULT_HRF_VERSION) -> Envelope:
        return cls(version=version, messages=list(conversation.messages))

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_json_dict(), ensure_ascii=False, indent=indent)

    def get_script(self) -> Script:
        """Return the first harmony-script carried by a system message."""
        for message in self.messages:
            if message.role == "system" and message.is_script and isinstance(message.content, dict):
                try:
                    return Script.model_validate(message.content)
                except ValidationError as exc:
                    raise StepValidationError(f"Failed to decode harmony-script: {exc}") from exc
        raise ScriptNotFoundError("No harmony-script found in messages.")

    def plain_system_prompts(self) -> list[tuple[Channel | None, str]]:
        return [
            (message.channel, message.content)
            for message in self.messages
            if message.role == "system" and not message.is_script and isinstance(message.content, str)
        ]

    def user_message(self) -> tuple[Channel | None, str] | None:
        for message in self.messages:
            if message.role == "user" and isinstance(message.content, str):
                return message.channel, message.content
        return None


@dataclass(frozen=True)
class HarmonyError:
    """Structured error returned by validators and failed executions."""

    code: str
    message: str
    details: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


@dataclass
class ExecutionResult:
    """Outcome of one script run: final text, variable snapshot and optional error."""

    final_text: str = ""
    vars: dict[str, Any] = field(default_factory=dict)
    error: HarmonyError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
