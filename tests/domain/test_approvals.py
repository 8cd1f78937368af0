"""Tests for the ApprovalTracker."""

import pytest

from phasegate.domain.approvals import ApprovalTracker
from phasegate.domain.exceptions import ValidationError
from phasegate.domain.models import ApprovalDecision, ArtifactRecord

DECIDED_AT = "2025-02-02T00:00:00+00:00"


@pytest.fixture
def tracker() -> ApprovalTracker:
    return ApprovalTracker(clock=lambda: DECIDED_AT)


class TestRecordDecision:
    """Tests for record_decision."""

    def test_approve_generated_stage(self, tracker, make_state):
        state = make_state(generated=("spec",))
        outcome = tracker.record_decision(
            state, "spec", ApprovalDecision(approved=True, approver_id="alice")
        )

        assert outcome.status == "approved"
        assert outcome.next_iteration is None
        assert outcome.record.approved
        assert outcome.record.approver_id == "alice"
        assert outcome.record.timestamp == DECIDED_AT
        assert outcome.record.iteration == 1
        assert outcome.state.iteration("spec") == 2
        assert outcome.state.completed_steps == ("spec",)
        assert outcome.state.current_stage == "research"
        # Input state untouched
        assert state.completed_steps == ()

    def test_reject_keeps_stage_and_increments(self, tracker, make_state):
        """Rejecting research keeps it current and bumps its counter."""
        state = make_state(approved=("spec",), generated=("research",))
        outcome = tracker.record_decision(
            state,
            "research",
            ApprovalDecision(
                approved=False, approver_id="bob", feedback=("expand sources",)
            ),
        )

        assert outcome.status == "needs_revision"
        assert outcome.record.iteration == 1
        assert outcome.next_iteration == 2
        assert outcome.record.feedback == ("expand sources",)
        assert outcome.state.iteration("research") == 2
        assert outcome.state.current_stage == "research"
        assert outcome.state.next_action == "revise_research"

    def test_second_decision_uses_incremented_iteration(self, tracker, make_state):
        state = make_state(approved=("spec",), generated=("research",))
        rejected = tracker.record_decision(
            state, "research", ApprovalDecision(approved=False)
        ).state
        outcome = tracker.record_decision(
            rejected, "research", ApprovalDecision(approved=True)
        )
        assert outcome.record.iteration == 2
        assert outcome.state.iteration("research") == 3

    def test_never_generated_stage_records_iteration_one(self, tracker, fresh_state):
        outcome = tracker.record_decision(
            fresh_state, "spec", ApprovalDecision(approved=False)
        )
        assert outcome.record.iteration == 1
        assert outcome.state.iteration("spec") == 2

    def test_rejection_revokes_downstream_approvals(self, tracker, make_state):
        """Ordering invariant: nothing stays approved behind a rejection."""
        state = make_state(approved=("spec", "research", "plan"))
        outcome = tracker.record_decision(
            state, "research", ApprovalDecision(approved=False)
        )
        assert outcome.state.completed_steps == ("spec",)
        assert not outcome.state.is_approved("plan")

    def test_approval_clears_revalidation_flag(self, tracker, make_state):
        from dataclasses import replace

        state = make_state(approved=("spec",), generated=("research",))
        record = state.record("research")
        flagged = replace(record.artifact, needs_revalidation=True)
        state = state.with_record(replace(record, artifact=flagged))

        outcome = tracker.record_decision(
            state, "research", ApprovalDecision(approved=True)
        )
        assert outcome.state.record("research").artifact.needs_revalidation is False

    def test_unknown_stage_raises(self, tracker, fresh_state):
        with pytest.raises(ValidationError, match="prd"):
            tracker.record_decision(fresh_state, "prd", ApprovalDecision(approved=True))


class TestStatus:
    """Tests for the read-only status projection."""

    def test_not_started(self, tracker, fresh_state):
        status = tracker.status(fresh_state, "spec")
        assert status.status == "not_started"
        assert not status.approved
        assert status.approver_id is None

    def test_pending_approval(self, tracker, make_state):
        status = tracker.status(make_state(generated=("spec",)), "spec")
        assert status.status == "pending_approval"

    def test_approved(self, tracker, make_state):
        status = tracker.status(make_state(approved=("spec",)), "spec")
        assert status.status == "approved"
        assert status.approved
        assert status.approver_id == "alice"

    def test_needs_revision_then_pending_after_new_draft(self, tracker, make_state):
        from dataclasses import replace

        state = make_state(generated=("spec",))
        state = tracker.record_decision(
            state, "spec", ApprovalDecision(approved=False, feedback=("too vague",))
        ).state
        status = tracker.status(state, "spec")
        assert status.status == "needs_revision"
        assert status.feedback == ("too vague",)

        record = state.record("spec")
        redraft = ArtifactRecord(reference="spec@2", generated_at=DECIDED_AT, iteration=2)
        state = state.with_record(replace(record, artifact=redraft))
        assert tracker.status(state, "spec").status == "pending_approval"

    def test_status_does_not_mutate(self, tracker, make_state):
        state = make_state(generated=("spec",))
        tracker.status(state, "spec")
        assert state == make_state(generated=("spec",))
