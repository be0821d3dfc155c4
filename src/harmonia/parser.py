"""HRF wire-text parser.

Messages follow the shape::

    <|start|>ROLE[<|channel|>CHANNEL[ to=RECIPIENT]][<|constrain|>TYPE]<|message|>CONTENT<terminator>

Content constrained as ``json`` or ``harmony-script`` is decoded as JSON; any
other content is kept verbatim as a string, surrounding whitespace included.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from harmonia import tokens
from harmonia.errors import FormatError
from harmonia.models import STRUCTURED_CONTENT_TYPES, Channel, Conversation, Message, Termination

RECIPIENT_PREFIX = "to="
WHITESPACE_RE = re.compile(r"\s+")

_TERMINATIONS: dict[str, Termination] = {
    tokens.END: Termination.END,
    tokens.CALL: Termination.CALL,
    tokens.RETURN: Termination.RETURN,
}


@dataclass(frozen=True)
class _Header:
    role: str
    channel: Channel | None
    recipient: str | None
    content_type: str | None
    end: int


def parse_conversation(text: str) -> Conversation:
    """Scan raw HRF text into an ordered conversation."""

    if not text or not text.strip():
        raise FormatError("Input is empty")

    conversation = Conversation()
    pos = 0
    while (start := text.find(tokens.START, pos)) >= 0:
        header = _parse_header(text, start + len(tokens.START))
        content_start = header.end + len(tokens.MESSAGE)

        raw, terminator, term_index = _read_until_any(text, content_start, tokens.TERMINATORS)
        if terminator is None:
            raise FormatError("Missing terminator token (<|end|>|<|call|>|<|return|>)")

        message = Message(
            role=header.role,
            channel=header.channel,
            recipient=header.recipient,
            content_type=header.content_type,
            content=_parse_content(raw, header.content_type),
            termination=_TERMINATIONS[terminator],
        )
        conversation.messages.append(message)
        pos = term_index + len(terminator)

    logger.debug("hrf.parse.done messages={}", len(conversation.messages))
    return conversation


def _parse_header(text: str, pos: int) -> _Header:
    role_raw, breaker, cursor = _read_until_any(text, pos, tokens.HEADER_BREAKERS)
    role = role_raw.strip()
    if not role:
        raise FormatError("Missing role in header")

    channel: Channel | None = None
    recipient: str | None = None
    content_type: str | None = None

    if breaker == tokens.CHANNEL:
        channel_raw, breaker, next_cursor = _read_until_any(
            text, cursor + len(tokens.CHANNEL), (tokens.CONSTRAIN, tokens.MESSAGE)
        )
        channel, recipient = _parse_channel_and_recipient(channel_raw)
        cursor = next_cursor

    if breaker == tokens.CONSTRAIN:
        type_raw, breaker, next_cursor = _read_until_any(text, cursor + len(tokens.CONSTRAIN), (tokens.MESSAGE,))
        content_type = type_raw.strip()
        cursor = next_cursor

    if breaker != tokens.MESSAGE:
        raise FormatError("Header did not lead to <|message|>")

    return _Header(role=role, channel=channel, recipient=recipient, content_type=content_type, end=cursor)


def _parse_channel_and_recipient(raw: str) -> tuple[Channel | None, str | None]:
    stripped = raw.strip()
    if not stripped:
        return None, None

    name: str | None = None
    recipient: str | None = None
    for part in WHITESPACE_RE.split(stripped):
        if part[: len(RECIPIENT_PREFIX)].casefold() == RECIPIENT_PREFIX:
            recipient = part[len(RECIPIENT_PREFIX) :].strip()
        elif name is None:
            name = part

    if name is None:
        return None, recipient
    try:
        return Channel(name), recipient
    except ValueError:
        raise FormatError(f"Unknown channel '{name}'") from None


def _read_until_any(text: str, start: int, candidates: Sequence[str]) -> tuple[str, str | None, int]:
    """Read up to the leftmost occurrence of any candidate token.

    Returns the segment, the matched token (None when nothing matched) and the
    index of the matched token, or ``len(text)`` when nothing matched.
    """

    best_index = -1
    matched: str | None = None
    for candidate in candidates:
        index = text.find(candidate, start)
        if index >= 0 and (best_index < 0 or index < best_index):
            best_index = index
            matched = candidate
    if best_index < 0:
        return text[start:], None, len(text)
    return text[start:best_index], matched, best_index


def _parse_content(raw: str, content_type: str | None) -> Any:
    if content_type and content_type.casefold() in STRUCTURED_CONTENT_TYPES:
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise FormatError(f"Content for contentType='{content_type}' is not valid JSON.") from exc
    return raw
