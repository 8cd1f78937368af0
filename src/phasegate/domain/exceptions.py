"""
Domain exceptions for the phase approval workflow.

These represent business rule violations in the domain layer. Every
exception carries a ``kind`` (stable name surfaced in command results) and a
``context`` mapping with the structured details a caller needs to recover.
"""

from typing import Any


class PhaseGateError(Exception):
    """Base class for every failure the workflow reports to callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def context(self) -> dict[str, Any]:
        return {}


class ValidationError(PhaseGateError):
    """
    Raised when a command, stage, phase id or state document is malformed.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        errors: tuple[str, ...] = (),
    ):
        """
        Args:
            message: Human-readable error message
            field: Name of the offending input, if any
            value: The rejected value
            errors: Structured schema errors ("<path>: <message>")
        """
        super().__init__(message)
        self.field = field
        self.value = value
        self.errors = errors

    @property
    def context(self) -> dict[str, Any]:
        return {"field": self.field, "value": self.value, "errors": list(self.errors)}


class WorkflowError(PhaseGateError):
    """
    Raised when a stage transition is not allowed yet.

    Always names the stage the phase is currently on and the prerequisite
    stages (or dependency phases) that must be satisfied first.
    """

    def __init__(
        self,
        message: str,
        current_stage: str | None,
        required_steps: tuple[str, ...] = (),
        missing_dependencies: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.current_stage = current_stage
        self.required_steps = required_steps
        self.missing_dependencies = missing_dependencies

    @property
    def context(self) -> dict[str, Any]:
        return {
            "current_stage": self.current_stage,
            "required_steps": list(self.required_steps),
            "missing_dependencies": list(self.missing_dependencies),
        }


class HierarchicalViolation(PhaseGateError):
    """
    Raised when a change is applied to a stage whose precedents are not
    approved, or are flagged for re-validation.
    """

    def __init__(self, message: str, target_stage: str, unmet_precedents: tuple[str, ...]):
        super().__init__(message)
        self.target_stage = target_stage
        self.unmet_precedents = unmet_precedents

    @property
    def context(self) -> dict[str, Any]:
        return {
            "target_stage": self.target_stage,
            "unmet_precedents": list(self.unmet_precedents),
        }


class CorruptState(PhaseGateError):
    """Raised when a persisted phase document cannot be parsed or validated."""

    def __init__(self, message: str, phase_id: str, errors: tuple[str, ...]):
        super().__init__(message)
        self.phase_id = phase_id
        self.errors = errors

    @property
    def context(self) -> dict[str, Any]:
        return {"phase_id": self.phase_id, "errors": list(self.errors)}


class RecoveryError(PhaseGateError):
    """Raised when no usable backup exists to restore a corrupted phase."""

    def __init__(
        self,
        message: str,
        phase_id: str,
        attempted: tuple[str, ...] = (),
        errors: tuple[str, ...] = (),
    ):
        """
        Args:
            message: Human-readable error message
            phase_id: Phase whose state could not be recovered
            attempted: Backup keys that were tried, newest first
            errors: Corruption errors of the primary document, if known
        """
        super().__init__(message)
        self.phase_id = phase_id
        self.attempted = attempted
        self.errors = errors

    @property
    def context(self) -> dict[str, Any]:
        return {
            "phase_id": self.phase_id,
            "attempted": list(self.attempted),
            "errors": list(self.errors),
        }


class ConfigurationError(Exception):
    """Raised when a settings file is missing, unreadable or invalid."""
