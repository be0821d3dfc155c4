"""Literal delimiter tokens of the HRF wire grammar."""

from __future__ import annotations

START = "<|start|>"
MESSAGE = "<|message|>"
CHANNEL = "<|channel|>"
CONSTRAIN = "<|constrain|>"
END = "<|end|>"
CALL = "<|call|>"
RETURN = "<|return|>"

HEADER_BREAKERS: tuple[str, ...] = (CHANNEL, CONSTRAIN, MESSAGE)
TERMINATORS: tuple[str, ...] = (END, CALL, RETURN)
