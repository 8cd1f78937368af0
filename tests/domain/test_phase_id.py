"""Tests for phase id parsing and dependency inference."""

import pytest

from phasegate.domain.models import PhaseId
from phasegate.domain.phase_id import (
    infer_dependencies,
    is_valid_phase_id,
    parse_phase_id,
)


class TestParsePhaseId:
    """Tests for parse_phase_id."""

    def test_valid_id(self):
        result = parse_phase_id("06-auth-flow")
        assert result.ok
        assert result.phase_id == PhaseId(sequence=6, slug="auth-flow")
        assert result.error is None

    def test_round_trips_through_str(self):
        result = parse_phase_id("12-x")
        assert str(result.phase_id) == "12-x"

    @pytest.mark.parametrize(
        "raw",
        ["6-test", "006-test", "06_test", "06-", "06-Test", "06-test-", "test", ""],
    )
    def test_invalid_ids(self, raw):
        """Malformed ids produce an error instead of raising."""
        result = parse_phase_id(raw)
        assert not result.ok
        assert result.phase_id is None
        assert result.error

    def test_non_string(self):
        result = parse_phase_id(None)
        assert not result.ok
        assert "non-empty string" in result.error

    def test_is_valid_phase_id(self):
        assert is_valid_phase_id("01-setup")
        assert not is_valid_phase_id("setup")


class TestInferDependencies:
    """Tests for numeric-prefix dependency inference."""

    def test_suggests_previous_sequence(self):
        known = ["04-a", "05-y", "05-z", "06-x", "07-w"]
        assert infer_dependencies("06-x", known) == ("05-y", "05-z")

    def test_no_previous_phase(self):
        assert infer_dependencies("06-x", ["01-a", "06-x"]) == ()

    def test_first_sequence_has_no_dependencies(self):
        assert infer_dependencies("00-bootstrap", ["00-other"]) == ()

    def test_ignores_malformed_known_ids(self):
        assert infer_dependencies("06-x", ["05", "5-y", "05-y"]) == ("05-y",)

    def test_malformed_phase_id(self):
        assert infer_dependencies("bad", ["05-y"]) == ()
