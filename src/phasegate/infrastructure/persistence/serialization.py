"""
Conversion between PhaseState and the persisted camelCase document.

The document carries the derived fields (currentStep, completedSteps,
nextAction) for human readers; on load they are recomputed from the
approval records and compared, never trusted.
"""

from typing import Any

from phasegate.domain.models import (
    ALL_STAGES,
    ApprovalRecord,
    ArtifactRecord,
    Blocker,
    BlockerType,
    ChangeNote,
    PhaseMetadata,
    PhaseState,
    StageRecord,
)


def _approval_to_dict(record: ApprovalRecord | None) -> dict[str, Any] | None:
    if record is None:
        return None
    return {
        "approved": record.approved,
        "approvedBy": record.approver_id,
        "timestamp": record.timestamp,
        "comments": record.comments,
        "feedback": list(record.feedback),
        "iteration": record.iteration,
    }


def _artifact_to_dict(record: ArtifactRecord | None) -> dict[str, Any] | None:
    if record is None:
        return None
    return {
        "reference": record.reference,
        "generatedAt": record.generated_at,
        "iteration": record.iteration,
        "needsRevalidation": record.needs_revalidation,
        "changeNotes": [
            {
                "originStage": note.origin_stage,
                "description": note.description,
                "timestamp": note.timestamp,
            }
            for note in record.change_notes
        ],
    }


def state_to_dict(state: PhaseState) -> dict[str, Any]:
    """Serialize a state to the JSON-compatible persisted document."""
    return {
        "phase": state.phase_id,
        "phaseTitle": state.title,
        "currentStep": state.current_stage,
        "completedSteps": list(state.completed_steps),
        "nextAction": state.next_action,
        "approvals": {r.stage: _approval_to_dict(r.approval) for r in state.stages},
        "iterations": {r.stage: r.iteration for r in state.stages},
        "artifacts": {r.stage: _artifact_to_dict(r.artifact) for r in state.stages},
        "blockers": [
            {"type": b.type.value, "description": b.description, "reference": b.reference}
            for b in state.blockers
        ],
        "dependencies": list(state.dependencies),
        "metadata": {
            "created": state.metadata.created,
            "lastModified": state.metadata.last_modified,
            "version": state.metadata.version,
        },
    }


def _dict_to_approval(data: dict[str, Any] | None) -> ApprovalRecord | None:
    if data is None:
        return None
    return ApprovalRecord(
        approved=data["approved"],
        approver_id=data["approvedBy"],
        timestamp=data["timestamp"],
        comments=data.get("comments", ""),
        feedback=tuple(data.get("feedback", [])),
        iteration=data.get("iteration", 1),
    )


def _dict_to_artifact(data: dict[str, Any] | None) -> ArtifactRecord | None:
    if data is None:
        return None
    return ArtifactRecord(
        reference=data["reference"],
        generated_at=data["generatedAt"],
        iteration=data["iteration"],
        needs_revalidation=data.get("needsRevalidation", False),
        change_notes=tuple(
            ChangeNote(
                origin_stage=note["originStage"],
                description=note["description"],
                timestamp=note["timestamp"],
            )
            for note in data.get("changeNotes", [])
        ),
    )


def dict_to_state(data: dict[str, Any]) -> PhaseState:
    """
    Deserialize a schema-valid document.

    Stage order is recovered from the ``iterations`` keys in canonical order.
    Documents written before artifact tracking have no ``artifacts`` key.
    """
    iterations = data["iterations"]
    approvals = data["approvals"]
    artifacts = data.get("artifacts", {})
    stages = tuple(
        StageRecord(
            stage=stage,
            iteration=iterations[stage],
            approval=_dict_to_approval(approvals.get(stage)),
            artifact=_dict_to_artifact(artifacts.get(stage)),
        )
        for stage in ALL_STAGES
        if stage in iterations
    )
    metadata = data["metadata"]
    return PhaseState(
        phase_id=data["phase"],
        title=data["phaseTitle"],
        stages=stages,
        metadata=PhaseMetadata(
            created=metadata["created"],
            last_modified=metadata["lastModified"],
            version=metadata["version"],
        ),
        blockers=tuple(
            Blocker(
                type=BlockerType(b["type"]),
                description=b["description"],
                reference=b.get("reference"),
            )
            for b in data["blockers"]
        ),
        dependencies=tuple(data["dependencies"]),
    )


def invariant_errors(data: dict[str, Any], state: PhaseState) -> list[str]:
    """
    Cross-field checks the schema cannot express.

    The persisted derived fields must match what the approval records imply,
    and no approved stage may follow an unapproved one.
    """
    errors: list[str] = []
    stage_names = {r.stage for r in state.stages}
    for key in ("approvals", "artifacts"):
        extra = sorted(set(data.get(key, {})) - stage_names)
        if extra:
            errors.append(f"{key}: stages without an iteration counter: {extra}")

    if list(data["completedSteps"]) != list(state.completed_steps):
        errors.append(
            f"completedSteps: {data['completedSteps']} does not match approvals "
            f"(expected {list(state.completed_steps)})"
        )
    if data["currentStep"] != state.current_stage:
        errors.append(
            f"currentStep: {data['currentStep']!r} does not match approvals "
            f"(expected {state.current_stage!r})"
        )

    seen_unapproved = None
    for record in state.stages:
        if not record.is_approved:
            seen_unapproved = seen_unapproved or record.stage
        elif seen_unapproved is not None:
            errors.append(
                f"approvals/{record.stage}: approved while {seen_unapproved} is not"
            )
    return errors
