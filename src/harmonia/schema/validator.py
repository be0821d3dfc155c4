"""Draft 2020-12 schema evaluation for envelopes and embedded scripts."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from loguru import logger

from harmonia.errors import SchemaConfigurationError
from harmonia.models import Envelope, HarmonyError

ENVELOPE_SCHEMA_FILE = "harmony_envelope_schema.json"
SCRIPT_DEFINITION = "HarmonyScript"
SCHEMA_ENVELOPE_FAILED = "HRF_SCHEMA_ENVELOPE_FAILED"
SCHEMA_SCRIPT_FAILED = "HRF_SCHEMA_SCRIPT_FAILED"


@dataclass(frozen=True)
class SchemaValidator:
    """Loaded envelope and script schemas.

    Instances are read-only after loading and may be shared across concurrent
    validations.
    """

    envelope_validator: Draft202012Validator
    script_validator: Draft202012Validator

    @classmethod
    def load(cls, path: Path | None = None) -> SchemaValidator:
        """Load the envelope schema from ``path`` or from the bundled document.

        ``path`` may point at the schema file itself or at the folder holding
        ``harmony_envelope_schema.json``.
        """

        if path is None:
            text = resources.files("harmonia.schema").joinpath(ENVELOPE_SCHEMA_FILE).read_text(encoding="utf-8")
            source = f"package:{ENVELOPE_SCHEMA_FILE}"
        else:
            schema_file = path / ENVELOPE_SCHEMA_FILE if path.is_dir() else path
            if not schema_file.is_file():
                raise SchemaConfigurationError(f"Harmony envelope schema file not found at '{schema_file}'.")
            text = schema_file.read_text(encoding="utf-8")
            source = str(schema_file)

        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SchemaConfigurationError(f"Schema document '{source}' is not valid JSON: {exc}") from exc
        validator = cls.from_document(document)
        logger.info("schema.load source={}", source)
        return validator

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> SchemaValidator:
        defs = document.get("$defs")
        if not isinstance(defs, Mapping) or SCRIPT_DEFINITION not in defs:
            raise SchemaConfigurationError(
                f"{SCRIPT_DEFINITION} sub-schema not found in the envelope schema at $defs.{SCRIPT_DEFINITION}."
            )

        script_document = {
            "$schema": document.get("$schema", Draft202012Validator.META_SCHEMA["$id"]),
            **defs[SCRIPT_DEFINITION],
            "$defs": dict(defs),
        }
        try:
            Draft202012Validator.check_schema(document)
            Draft202012Validator.check_schema(script_document)
        except SchemaError as exc:
            raise SchemaConfigurationError(f"Invalid envelope schema: {exc.message}") from exc

        return cls(
            envelope_validator=Draft202012Validator(dict(document)),
            script_validator=Draft202012Validator(script_document),
        )

    def validate_envelope(self, envelope: str | Mapping[str, Any] | Envelope) -> HarmonyError | None:
        """Validate an envelope given as JSON text, decoded JSON or a model."""

        if isinstance(envelope, Envelope):
            instance: Any = envelope.to_json_dict()
        elif isinstance(envelope, str):
            try:
                instance = json.loads(envelope)
            except json.JSONDecodeError as exc:
                return HarmonyError(
                    code=SCHEMA_ENVELOPE_FAILED,
                    message="Envelope is not valid JSON.",
                    details=[{"path": "$", "message": str(exc), "validator": "json"}],
                )
        else:
            instance = envelope

        diagnostics = _diagnostics(self.envelope_validator, instance)
        if not diagnostics:
            return None
        logger.debug("schema.envelope.failed errors={}", len(diagnostics))
        return HarmonyError(
            code=SCHEMA_ENVELOPE_FAILED,
            message="Envelope validation failed against the HarmonyEnvelope JSON Schema.",
            details=diagnostics,
        )

    def validate_script(self, value: Any) -> HarmonyError | None:
        diagnostics = _diagnostics(self.script_validator, value)
        if not diagnostics:
            return None
        logger.debug("schema.script.failed errors={}", len(diagnostics))
        return HarmonyError(
            code=SCHEMA_SCRIPT_FAILED,
            message="harmony-script validation failed against the HarmonyScript JSON Schema.",
            details=diagnostics,
        )


def _diagnostics(validator: Draft202012Validator, instance: Any) -> list[dict[str, str]]:
    rows = [
        {"path": error.json_path, "message": error.message, "validator": str(error.validator)}
        for error in validator.iter_errors(instance)
    ]
    return sorted(rows, key=lambda row: (row["path"], row["message"]))
