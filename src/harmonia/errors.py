"""Application-level exception types for Harmonia."""

from __future__ import annotations


class HarmoniaError(Exception):
    """Base exception for Harmonia."""


class ConfigurationError(HarmoniaError):
    """Base exception for configuration and startup validation errors."""


class SchemaConfigurationError(ConfigurationError):
    """Raised when the envelope schema document cannot be loaded or is incomplete."""


class FormatError(HarmoniaError):
    """Raised when HRF wire text is malformed."""


class ScriptNotFoundError(HarmoniaError):
    """Raised when an envelope carries no harmony-script system message."""


class StepValidationError(HarmoniaError):
    """Raised when a harmony-script step violates its structural rules."""


class ExpressionError(HarmoniaError):
    """Raised when a script expression cannot be evaluated."""


class ExecutionError(HarmoniaError):
    """Base exception for failures while executing a script."""


class ToolNotFoundError(ExecutionError):
    """Raised when a tool-call recipient does not resolve to a tool."""

    def __init__(self, recipient: str) -> None:
        """Initialize with the unresolved recipient."""
        super().__init__(f"Function '{recipient}' not found")
        self.recipient = recipient


class ToolArgumentsError(ExecutionError):
    """Raised when tool-call arguments cannot be built or are rejected."""


class ToolInvocationError(ExecutionError):
    """Raised when a tool raises during invocation."""

    def __init__(self, recipient: str, cause: BaseException) -> None:
        """Initialize with the failing recipient and the original exception."""
        super().__init__(f"Tool '{recipient}' failed: {cause!s}")
        self.recipient = recipient


class UnsupportedStepError(ExecutionError):
    """Raised when the interpreter meets a step type it cannot dispatch."""

    def __init__(self, step_type: str) -> None:
        """Initialize with the unsupported step type."""
        super().__init__(f"Unsupported step type: {step_type}")
        self.step_type = step_type


class ExecutionCancelledError(ExecutionError):
    """Raised when the cancellation event is set between steps."""
