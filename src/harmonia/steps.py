"""HarmonyScript steps.

A script is an ordered list of steps discriminated by their ``type`` field.
Every step checks its own structural rules when it is constructed, so a
malformed step fails on the first violation before anything executes. Nested
``if`` branches are validated recursively by the same mechanism.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

RECIPIENT_SEPARATOR = "."
FINAL_SENTINEL = "."
TOOL_CALL_CHANNEL = "commentary"
ASSISTANT_CHANNELS = frozenset({"analysis", "final"})


def is_material(text: str | None) -> bool:
    """Return whether text is non-blank and not exactly the "." sentinel.

    The sentinel is compared verbatim, so " . " still counts as material.
    """

    if text is None or not text.strip():
        return False
    return text != FINAL_SENTINEL


def split_recipient(recipient: str) -> tuple[str, str]:
    """Split ``plugin.function`` on the last separator.

    Dotted namespaces such as ``tools.kitchen.search`` keep everything before
    the final separator as the namespace.
    """

    index = recipient.rfind(RECIPIENT_SEPARATOR)
    if index <= 0 or index >= len(recipient) - 1:
        raise ValueError(f"Invalid recipient '{recipient}'. Expected 'plugin.functionName'.")
    return recipient[:index], recipient[index + 1 :]


class _Step(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ExtractInputStep(_Step):
    type: Literal["extract-input"] = "extract-input"
    output: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_output(self) -> ExtractInputStep:
        if not self.output:
            raise ValueError("extract-input requires a non-empty 'output' mapping")
        for name, expression in self.output.items():
            if not name.strip():
                raise ValueError("extract-input output names must not be blank")
            if not expression.strip():
                raise ValueError(f"extract-input output '{name}' has a blank expression")
        return self


class ToolCallStep(_Step):
    type: Literal["tool-call"] = "tool-call"
    recipient: str
    channel: str = TOOL_CALL_CHANNEL
    args: dict[str, Any] = Field(default_factory=dict)
    save_as: str

    @model_validator(mode="after")
    def _check_call(self) -> ToolCallStep:
        split_recipient(self.recipient)
        if self.channel != TOOL_CALL_CHANNEL:
            raise ValueError(f"tool-call channel must be '{TOOL_CALL_CHANNEL}', got '{self.channel}'")
        if not self.save_as.strip():
            raise ValueError("tool-call requires a non-blank 'save_as'")
        return self


class IfStep(_Step):
    type: Literal["if"] = "if"
    condition: str
    then: list[Step] = Field(default_factory=list)
    else_: list[Step] = Field(default_factory=list, alias="else")

    @model_validator(mode="after")
    def _check_condition(self) -> IfStep:
        if not self.condition.strip():
            raise ValueError("if requires a non-blank 'condition'")
        return self


class AssistantMessageStep(_Step):
    type: Literal["assistant-message"] = "assistant-message"
    channel: str = "final"
    content: str | None = None
    content_template: str | None = None

    @model_validator(mode="after")
    def _check_message(self) -> AssistantMessageStep:
        if self.channel not in ASSISTANT_CHANNELS:
            raise ValueError(f"assistant-message channel must be 'analysis' or 'final', got '{self.channel}'")
        if is_material(self.content) and is_material(self.content_template):
            raise ValueError("assistant-message may set only one of 'content' and 'content_template'")
        return self


class HaltStep(_Step):
    type: Literal["halt"] = "halt"


Step = Annotated[
    ExtractInputStep | ToolCallStep | IfStep | AssistantMessageStep | HaltStep,
    Field(discriminator="type"),
]

IfStep.model_rebuild()


class Script(BaseModel):
    """Root of a harmony-script: optional variable defaults and the step list."""

    model_config = ConfigDict(frozen=True)

    vars: dict[str, Any] | None = None
    steps: list[Step] = Field(default_factory=list)
