"""JSON Schema validation of HRF envelopes and harmony-scripts."""

from harmonia.schema.validator import (
    ENVELOPE_SCHEMA_FILE,
    SCHEMA_ENVELOPE_FAILED,
    SCHEMA_SCRIPT_FAILED,
    SCRIPT_DEFINITION,
    SchemaValidator,
)

__all__ = [
    "ENVELOPE_SCHEMA_FILE",
    "SCHEMA_ENVELOPE_FAILED",
    "SCHEMA_SCRIPT_FAILED",
    "SCRIPT_DEFINITION",
    "SchemaValidator",
]
