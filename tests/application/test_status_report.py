"""Tests for the status report projection."""

from dataclasses import replace

from phasegate.application.status import build_status_report
from phasegate.domain.approvals import ApprovalTracker
from phasegate.domain.models import ApprovalDecision, ChangeNote
from phasegate.domain.workflow import WorkflowValidator


def report_for(state, order):
    return build_status_report(state, WorkflowValidator(order), ApprovalTracker())


class TestBuildStatusReport:
    def test_fresh_phase(self, fresh_state, order):
        report = report_for(fresh_state, order)

        assert report["phase_title"] == "Test"
        assert report["current_stage"] == "spec"
        assert report["next_action"] == "start_spec"
        assert report["progress"] == {
            "completed": 0,
            "total": 4,
            "percentage": 0,
            "current_stage": "spec",
        }
        assert [s["status"] for s in report["stages"]] == ["not_started"] * 4

    def test_stage_statuses(self, make_state, order):
        state = make_state(approved=("spec",), generated=("research",))
        report = report_for(state, order)

        spec, research, plan, _ = report["stages"]
        assert spec["status"] == "approved"
        assert spec["approver"] == "alice"
        assert spec["iteration"] == 2
        assert research["status"] == "pending_approval"
        assert research["artifact"] == "06-test/research.md@1"
        assert plan["status"] == "not_started"
        assert plan["artifact"] is None

    def test_rejection_feedback_and_change_notes(self, make_state, order):
        state = make_state(approved=("spec",), generated=("research", "plan"))
        state = (
            ApprovalTracker()
            .record_decision(
                state,
                "research",
                ApprovalDecision(approved=False, approver_id="bob", feedback=("expand",)),
            )
            .state
        )
        plan = state.record("plan")
        note = ChangeNote(origin_stage="research", description="rejected", timestamp="t")
        state = state.with_record(
            replace(
                plan,
                artifact=replace(plan.artifact, needs_revalidation=True, change_notes=(note,)),
            )
        )

        report = report_for(state, order)

        research = report["stages"][1]
        assert research["status"] == "needs_revision"
        assert research["feedback"] == ["expand"]
        assert report["next_action"] == "revise_research"
        plan_row = report["stages"][2]
        assert plan_row["needs_revalidation"] is True
        assert plan_row["change_notes"] == [
            {"origin_stage": "research", "description": "rejected"}
        ]

    def test_complete_phase(self, make_state, order):
        report = report_for(make_state(approved=("spec", "research", "plan", "tasks")), order)
        assert report["current_stage"] is None
        assert report["next_action"] == "ready_for_handoff"
        assert report["progress"]["percentage"] == 100

    def test_excludes_modification_time(self, make_state, order):
        """Saving again must not change the report of an unchanged phase."""
        state = make_state(approved=("spec",))
        touched = replace(state, metadata=replace(state.metadata, last_modified="later"))
        assert report_for(state, order) == report_for(touched, order)
