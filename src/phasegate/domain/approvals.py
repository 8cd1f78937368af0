"""
Approval Tracker: records approve/reject decisions on stage records.

Works purely on PhaseState values. Persistence is the router's job, and
prerequisite ordering is the WorkflowValidator's.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from phasegate.domain.exceptions import ValidationError
from phasegate.domain.models import (
    ApprovalDecision,
    ApprovalOutcome,
    ApprovalRecord,
    ApprovalStatus,
    PhaseState,
)

logger = logging.getLogger(__name__)

APPROVED = "approved"
NEEDS_REVISION = "needs_revision"
PENDING_APPROVAL = "pending_approval"
NOT_STARTED = "not_started"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ApprovalTracker:
    """Records decisions and projects approval status."""

    def __init__(self, clock: Callable[[], str] | None = None):
        self._clock = clock or _utc_now

    def record_decision(
        self, state: PhaseState, stage: str, decision: ApprovalDecision
    ) -> ApprovalOutcome:
        """
        Store a decision on ``stage`` and bump its iteration counter.

        The decision is recorded against ``max(iteration, 1)``; the counter is
        then set one past that. A rejection revokes every downstream approval
        so no approved stage can sit behind an unapproved one.
        """
        if not state.has_stage(stage):
            raise ValidationError(
                f"Stage '{stage}' is not tracked for phase {state.phase_id}",
                field="stage",
                value=stage,
            )
        current = state.record(stage)
        iteration = max(current.iteration, 1)
        approval = ApprovalRecord(
            approved=decision.approved,
            approver_id=decision.approver_id,
            timestamp=self._clock(),
            comments=decision.comments,
            feedback=tuple(decision.feedback),
            iteration=iteration,
        )

        artifact = current.artifact
        if decision.approved and artifact is not None and artifact.needs_revalidation:
            artifact = replace(artifact, needs_revalidation=False)

        new_state = state.with_record(
            replace(current, approval=approval, iteration=iteration + 1, artifact=artifact)
        )

        if decision.approved:
            logger.info(
                "%s: %s approved by %s (iteration %d)",
                state.phase_id,
                stage,
                decision.approver_id,
                iteration,
            )
            return ApprovalOutcome(state=new_state, record=approval, status=APPROVED)

        new_state = new_state.revoke_approvals(state.stage_order.after(stage))
        logger.info(
            "%s: %s rejected by %s (iteration %d, %d feedback items)",
            state.phase_id,
            stage,
            decision.approver_id,
            iteration,
            len(approval.feedback),
        )
        return ApprovalOutcome(
            state=new_state,
            record=approval,
            status=NEEDS_REVISION,
            next_iteration=iteration + 1,
        )

    def status(self, state: PhaseState, stage: str) -> ApprovalStatus:
        """Read-only projection of the approval slot for ``stage``."""
        record = state.record(stage)
        if record.is_approved:
            label = APPROVED
        elif record.awaiting_revision:
            label = NEEDS_REVISION
        elif record.artifact is not None:
            label = PENDING_APPROVAL
        else:
            label = NOT_STARTED

        approval = record.approval
        if approval is None:
            return ApprovalStatus(
                stage=stage, approved=False, status=label, iteration=record.iteration
            )
        return ApprovalStatus(
            stage=stage,
            approved=approval.approved,
            status=label,
            iteration=record.iteration,
            approver_id=approval.approver_id,
            timestamp=approval.timestamp,
            comments=approval.comments,
            feedback=approval.feedback,
        )
