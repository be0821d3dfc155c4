"""Loose collaborator mode: chat-log projection and ad-hoc tool dispatch.

Unlike the script interpreter, nothing here raises on tool failures; errors are
folded back into the conversation as JSON payloads the model can read.
"""

from __future__ import annotations

import inspect
import json
from typing import Any

from loguru import logger

from harmonia.models import JSON_CONTENT_TYPE, Channel, Conversation, Message, Termination
from harmonia.providers import ChatTurn, ToolProvider
from harmonia.steps import split_recipient

SYSTEM_ROLES = frozenset({"system", "developer"})


def to_chat_log(conversation: Conversation) -> list[ChatTurn]:
    """Project a parsed conversation onto chat turns."""

    turns: list[ChatTurn] = []
    for message in conversation:
        content = _content_text(message.content)
        role = message.role.casefold()
        if role in SYSTEM_ROLES:
            turns.append(ChatTurn(role="system", content=content))
        elif role == "user":
            turns.append(ChatTurn(role="user", content=content))
        elif role == "assistant":
            if message.channel == Channel.FINAL:
                turns.append(ChatTurn(role="assistant", content=content))
            elif message.channel == Channel.COMMENTARY and not message.recipient:
                turns.append(ChatTurn(role="assistant", content=content))
        else:
            turns.append(ChatTurn(role="tool", content=content, name=message.role))
    return turns


def is_tool_call(message: Message) -> bool:
    return message.role.casefold() == "assistant" and message.channel == Channel.COMMENTARY and bool(message.recipient)


async def execute_tool_calls(conversation: Conversation, tools: ToolProvider) -> Conversation:
    """Invoke every tool call and return the conversation with results appended."""

    messages = list(conversation.messages)
    for message in conversation:
        if not is_tool_call(message):
            continue
        recipient = message.recipient or ""
        payload = await _dispatch(recipient, message.content, tools)
        messages.append(
            Message(
                role=recipient,
                channel=Channel.COMMENTARY,
                content_type=JSON_CONTENT_TYPE if not isinstance(payload, str) else None,
                content=payload,
                termination=Termination.END,
            )
        )
    return Conversation(messages=messages)


async def _dispatch(recipient: str, content: Any, tools: ToolProvider) -> Any:
    try:
        namespace, function = split_recipient(recipient)
    except ValueError:
        return {"error": "tool_not_found", "recipient": recipient}

    tool = tools.resolve(namespace, function)
    if tool is None:
        logger.warning("bridge.tool.missing recipient={}", recipient)
        return {"error": "tool_not_found", "recipient": recipient}

    try:
        arguments = _arguments(content)
    except ValueError as exc:
        return {"error": "invalid_tool_arguments", "recipient": recipient, "message": str(exc)}

    try:
        result = tool.invoke(arguments)
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        logger.warning("bridge.tool.failed recipient={} error={}", recipient, exc)
        return {"error": "tool_execution_failed", "recipient": recipient, "message": str(exc)}
    return _jsonable(result)


def _arguments(content: Any) -> dict[str, Any]:
    if content is None:
        return {}
    if isinstance(content, str):
        if not content.strip():
            return {}
        try:
            content = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Arguments are not valid JSON: {exc.msg}") from exc
    if isinstance(content, dict):
        return dict(content)
    return {"value": content}


def _content_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, separators=(",", ":"))


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value
