"""Tests for CascadeCoordinator."""

from phasegate.application.cascade import CascadeCoordinator, describe_change

FIXED_TIME = "2025-01-01T00:00:00+00:00"


def coordinator(order) -> CascadeCoordinator:
    return CascadeCoordinator(order, clock=lambda: FIXED_TIME)


class TestDescribeChange:
    def test_string_passes_through(self):
        assert describe_change("new goals") == "new goals"

    def test_mapping_is_stable_json(self):
        assert describe_change({"b": 1, "a": "x"}) == '{"a": "x", "b": 1}'


class TestPropagate:
    def test_flags_generated_downstream_artifacts(self, order, make_state):
        state = make_state(approved=("spec",), generated=("research", "plan"))

        result = coordinator(order).propagate(state, "spec", "new goals")

        assert result.updated == ("research", "plan")
        for stage in ("research", "plan"):
            artifact = result.state.record(stage).artifact
            assert artifact.needs_revalidation
            assert artifact.change_notes[-1].origin_stage == "spec"
            assert artifact.change_notes[-1].description == "new goals"
            assert artifact.change_notes[-1].timestamp == FIXED_TIME

    def test_skips_stages_without_artifacts(self, order, make_state):
        state = make_state(approved=("spec",), generated=("research",))

        result = coordinator(order).propagate(state, "spec", "x")

        assert result.updated == ("research",)
        assert result.state.record("plan").artifact is None

    def test_never_touches_approvals_or_references(self, order, make_state):
        state = make_state(approved=("spec", "research"))

        result = coordinator(order).propagate(state, "spec", "x")

        research = result.state.record("research")
        assert research.is_approved
        assert research.artifact.reference == "06-test/research.md@1"

    def test_terminal_stage_has_no_downstream(self, order, make_state):
        state = make_state(generated=("tasks",))
        result = coordinator(order).propagate(state, "tasks", "x")
        assert result.updated == ()
        assert result.state == state

    def test_notes_accumulate(self, order, make_state):
        state = make_state(approved=("spec",), generated=("research",))
        cascade = coordinator(order)

        state = cascade.propagate(state, "spec", "first").state
        state = cascade.propagate(state, "spec", "second").state

        notes = state.record("research").artifact.change_notes
        assert [n.description for n in notes] == ["first", "second"]

    def test_input_state_is_untouched(self, order, make_state):
        state = make_state(approved=("spec",), generated=("research",))

        coordinator(order).propagate(state, "spec", "x")

        assert not state.record("research").artifact.needs_revalidation
