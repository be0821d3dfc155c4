"""Conversions between HRF wire text and the JSON envelope."""

from __future__ import annotations

import json
from typing import Any

from harmonia import tokens
from harmonia.models import DEFAULT_HRF_VERSION, STRUCTURED_CONTENT_TYPES, Envelope, Message, Termination
from harmonia.parser import parse_conversation

_TERMINATOR_TOKENS: dict[Termination, str] = {
    Termination.END: tokens.END,
    Termination.CALL: tokens.CALL,
    Termination.RETURN: tokens.RETURN,
}


def envelope_to_text(envelope: Envelope) -> str:
    """Render every message on its own line."""

    return "\n".join(render_message(message) for message in envelope.messages)


def render_message(message: Message) -> str:
    parts = [tokens.START, message.role]
    if message.channel is not None:
        parts += [tokens.CHANNEL, message.channel.value]
        if message.recipient:
            parts.append(f" to={message.recipient}")
    if message.content_type:
        parts += [tokens.CONSTRAIN, message.content_type]
    parts += [tokens.MESSAGE, _render_content(message.content, message.content_type), _terminator(message.termination)]
    return "".join(parts)


def text_to_envelope(text: str, version: str = DEFAULT_HRF_VERSION) -> Envelope:
    return Envelope.from_conversation(parse_conversation(text), version)


def text_to_envelope_json(text: str, version: str = DEFAULT_HRF_VERSION) -> str:
    return text_to_envelope(text, version).to_json()


def envelope_json_to_text(document: str) -> str:
    return envelope_to_text(Envelope.parse_json(document))


def _render_content(content: Any, content_type: str | None) -> str:
    if content_type and content_type.strip().casefold() in STRUCTURED_CONTENT_TYPES:
        return json.dumps(content, ensure_ascii=False, separators=(",", ":"))
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, separators=(",", ":"))


def _terminator(termination: Termination | None) -> str:
    if termination is None:
        return tokens.END
    return _TERMINATOR_TOKENS[termination]
