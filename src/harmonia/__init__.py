"""Harmonia - Harmony Response Format parsing, validation and execution."""

from .converter import envelope_to_text, text_to_envelope
from .errors import FormatError, HarmoniaError
from .executor import HarmonyExecutor
from .models import Channel, Conversation, Envelope, ExecutionResult, HarmonyError, Message, Termination
from .parser import parse_conversation
from .schema import SchemaValidator
from .semantic import validate_for_hrf
from .steps import Script
from .tools import ToolRegistry

__version__ = "0.1.0"

__all__ = [
    "Channel",
    "Conversation",
    "Envelope",
    "ExecutionResult",
    "FormatError",
    "HarmoniaError",
    "HarmonyError",
    "HarmonyExecutor",
    "Message",
    "Script",
    "SchemaValidator",
    "Termination",
    "ToolRegistry",
    "envelope_to_text",
    "parse_conversation",
    "text_to_envelope",
    "validate_for_hrf",
]
