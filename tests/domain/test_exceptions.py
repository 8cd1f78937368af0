"""Tests for domain exceptions."""

import pytest

from phasegate.domain.exceptions import (
    ConfigurationError,
    CorruptState,
    HierarchicalViolation,
    PhaseGateError,
    RecoveryError,
    ValidationError,
    WorkflowError,
)


class TestKinds:
    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad"),
            WorkflowError("blocked", current_stage="spec"),
            HierarchicalViolation("bad change", "plan", ("spec",)),
            CorruptState("corrupt", "06-test", ("<root>: invalid JSON",)),
            RecoveryError("no backup", "06-test"),
        ],
    )
    def test_kind_is_class_name(self, error):
        assert isinstance(error, PhaseGateError)
        assert error.kind == type(error).__name__
        assert str(error) == error.message

    def test_configuration_error_is_not_a_workflow_failure(self):
        assert not issubclass(ConfigurationError, PhaseGateError)


class TestContext:
    def test_workflow_error(self):
        error = WorkflowError(
            "Cannot start plan",
            current_stage="research",
            required_steps=("research",),
        )
        assert error.context == {
            "current_stage": "research",
            "required_steps": ["research"],
            "missing_dependencies": [],
        }

    def test_validation_error(self):
        error = ValidationError("bad id", field="phase_id", value="6-x")
        assert error.context == {"field": "phase_id", "value": "6-x", "errors": []}

    def test_recovery_error(self):
        error = RecoveryError(
            "none usable", "06-test", attempted=("k2", "k1"), errors=("<root>: x",)
        )
        assert error.context["attempted"] == ["k2", "k1"]
        assert error.context["errors"] == ["<root>: x"]

    def test_base_context_empty(self):
        assert PhaseGateError("x").context == {}
