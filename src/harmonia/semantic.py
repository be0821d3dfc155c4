"""HRF semantic validation layered on top of schema validation.

Schema failures short-circuit. Past the schema, every rule runs and every
violation is collected so callers see the complete list in one pass.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from loguru import logger
from pydantic import ValidationError

from harmonia.models import SCRIPT_CONTENT_TYPE, STRUCTURED_CONTENT_TYPES, Envelope, HarmonyError, Message
from harmonia.schema import SCHEMA_ENVELOPE_FAILED, SchemaValidator
from harmonia.steps import Script

SEMANTIC_VALIDATION_FAILED = "HRF_SEMANTIC_VALIDATION_FAILED"
ASSISTANT_ROLE = "assistant"


def validate_for_hrf(document: str | Mapping[str, Any] | Envelope, schema: SchemaValidator) -> HarmonyError | None:
    """Validate an envelope against the schema and the HRF semantic rules.

    Raw JSON text or decoded JSON is schema-checked as given, before any model
    defaults are applied.
    """

    checked = check_for_hrf(document, schema)
    return checked if isinstance(checked, HarmonyError) else None


def check_for_hrf(document: str | Mapping[str, Any] | Envelope, schema: SchemaValidator) -> Envelope | HarmonyError:
    """Return the decoded envelope, or the first structured error that rejects it."""

    decoded = decode_envelope(document, schema)
    if isinstance(decoded, HarmonyError):
        return decoded
    error = _semantic_error(decoded, schema)
    return decoded if error is None else error


def decode_envelope(document: str | Mapping[str, Any] | Envelope, schema: SchemaValidator) -> Envelope | HarmonyError:
    """Schema-check a document, then decode it into an ``Envelope``."""

    schema_error = schema.validate_envelope(document)
    if schema_error is not None:
        return schema_error
    if isinstance(document, Envelope):
        return document

    try:
        if isinstance(document, str):
            return Envelope.parse_json(document)
        return Envelope.from_dict(document)
    except ValidationError as exc:
        return HarmonyError(
            code=SCHEMA_ENVELOPE_FAILED,
            message="Envelope could not be decoded.",
            details=[
                {"path": _error_location(error), "message": str(error.get("msg", "invalid")), "validator": "model"}
                for error in exc.errors()
            ],
        )


def _semantic_error(envelope: Envelope, schema: SchemaValidator) -> HarmonyError | None:
    violations: list[str] = []
    if not (envelope.version or "").strip():
        violations.append("HRFVersion must be a non-empty string.")
    if not envelope.messages:
        violations.append("messages must contain at least one message.")

    terminated = 0
    for index, message in enumerate(envelope.messages):
        violations.extend(_message_violations(index, message, schema))
        if message.termination is not None:
            terminated += 1

    if terminated > 1:
        # Soft rule, still reported as a failure.
        violations.append(
            f"warning: {terminated} messages carry a termination marker; at most one is expected per envelope."
        )

    if not violations:
        return None
    logger.info("hrf.validate.failed violations={}", len(violations))
    return HarmonyError(
        code=SEMANTIC_VALIDATION_FAILED,
        message="Envelope failed HRF semantic validation.",
        details=violations,
    )


def _message_violations(index: int, message: Message, schema: SchemaValidator) -> list[str]:
    where = f"messages[{index}]"
    violations: list[str] = []

    if not message.role.strip():
        violations.append(f"{where}: role must be a non-empty string.")

    if message.termination is not None and message.role != ASSISTANT_ROLE:
        violations.append(
            f"{where}: termination '{message.termination.value}' is only allowed on assistant messages "
            f"(role is '{message.role}')."
        )

    if message.role == ASSISTANT_ROLE and message.channel is None:
        violations.append(f"{where}: assistant messages must carry a channel (analysis, commentary or final).")

    content_type = message.content_type
    if content_type is None:
        if not isinstance(message.content, str):
            violations.append(f"{where}: content must be a string when contentType is absent.")
        return violations

    if content_type not in STRUCTURED_CONTENT_TYPES:
        violations.append(f"{where}: contentType '{content_type}' is not one of 'json', 'harmony-script'.")
        return violations

    if content_type == SCRIPT_CONTENT_TYPE:
        if not isinstance(message.content, dict):
            violations.append(f"{where}: harmony-script content must be a JSON object.")
            return violations
        script_error = schema.validate_script(message.content)
        if script_error is not None:
            reasons = "; ".join(f"{row['path']}: {row['message']}" for row in script_error.details)
            violations.append(f"{where}: {script_error.code}: {reasons}")
            return violations
        try:
            Script.model_validate(message.content)
        except ValidationError as exc:
            reasons = "; ".join(_format_step_error(error) for error in exc.errors())
            violations.append(f"{where}: invalid harmony-script step: {reasons}")

    return violations


def _error_location(error: Mapping[str, Any]) -> str:
    return ".".join(str(part) for part in error.get("loc", ()))


def _format_step_error(error: Mapping[str, Any]) -> str:
    location = _error_location(error)
    message = str(error.get("msg", "invalid"))
    return f"{location}: {message}" if location else message
