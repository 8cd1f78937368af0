"""Read-only status report of a phase."""

from typing import Any

from phasegate.domain.approvals import ApprovalTracker
from phasegate.domain.models import PhaseState
from phasegate.domain.workflow import WorkflowValidator


def build_status_report(
    state: PhaseState, validator: WorkflowValidator, tracker: ApprovalTracker
) -> dict[str, Any]:
    """
    Project a state into a plain, JSON-compatible report.

    Only persisted facts appear, so repeated reports of an unchanged phase
    are identical.
    """
    progress = validator.progress(state)
    stages = []
    for record in state.stages:
        approval = tracker.status(state, record.stage)
        artifact = record.artifact
        stages.append(
            {
                "stage": record.stage,
                "status": approval.status,
                "approved": approval.approved,
                "iteration": record.iteration,
                "approver": approval.approver_id,
                "decided_at": approval.timestamp,
                "comments": approval.comments,
                "feedback": list(approval.feedback),
                "artifact": artifact.reference if artifact else None,
                "needs_revalidation": bool(artifact and artifact.needs_revalidation),
                "change_notes": [
                    {"origin_stage": n.origin_stage, "description": n.description}
                    for n in (artifact.change_notes if artifact else ())
                ],
            }
        )

    return {
        "phase_title": state.title,
        "current_stage": state.current_stage,
        "next_action": state.next_action,
        "completed_steps": list(state.completed_steps),
        "progress": {
            "completed": progress.completed,
            "total": progress.total,
            "percentage": progress.percentage,
            "current_stage": progress.current_stage,
        },
        "stages": stages,
        "blockers": [
            {"type": b.type.value, "description": b.description, "reference": b.reference}
            for b in state.blockers
        ],
        "dependencies": list(state.dependencies),
        "version": state.metadata.version,
    }


def build_overview_row(
    state: PhaseState, validator: WorkflowValidator, tracker: ApprovalTracker
) -> dict[str, Any]:
    """One line of the multi-phase overview."""
    progress = validator.progress(state)
    return {
        "phase": state.phase_id,
        "phase_title": state.title,
        "stages": {r.stage: tracker.status(state, r.stage).status for r in state.stages},
        "progress": {
            "completed": progress.completed,
            "total": progress.total,
            "percentage": progress.percentage,
        },
        "next_action": state.next_action,
        "blockers": len(state.blockers),
    }
