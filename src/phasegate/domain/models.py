"""
Domain models for the phase approval workflow.

These are pure data structures. All models are immutable (frozen dataclasses);
a mutation is always a copy produced with ``dataclasses.replace`` so that a
loaded PhaseState can be handed between components without aliasing.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

# =============================================================================
# STAGES
# =============================================================================

SPEC = "spec"
RESEARCH = "research"
PLAN = "plan"
PRD = "prd"
TASKS = "tasks"

STATUS_COMMAND = "status"
APPROVE_COMMAND = "approve"

# Canonical position of every known stage; a StageOrder is a subsequence.
ALL_STAGES: tuple[str, ...] = (SPEC, RESEARCH, PLAN, PRD, TASKS)
DEFAULT_STAGES: tuple[str, ...] = (SPEC, RESEARCH, PLAN, TASKS)

SCHEMA_VERSION = "1.0.0"
READY_FOR_HANDOFF = "ready_for_handoff"


@dataclass(frozen=True)
class StageOrder:
    """The fixed chain of stages a phase must pass through."""

    stages: tuple[str, ...] = DEFAULT_STAGES

    def __post_init__(self) -> None:
        if not self.stages:
            raise ValueError("StageOrder requires at least one stage")
        unknown = [s for s in self.stages if s not in ALL_STAGES]
        if unknown:
            raise ValueError(f"Unknown stages: {unknown}")
        positions = [ALL_STAGES.index(s) for s in self.stages]
        if positions != sorted(set(positions)):
            raise ValueError(f"Stages out of canonical order: {self.stages}")

    @classmethod
    def standard(cls, include_prd: bool = False) -> "StageOrder":
        if include_prd:
            return cls(ALL_STAGES)
        return cls(DEFAULT_STAGES)

    def __iter__(self) -> Iterator[str]:
        return iter(self.stages)

    def __len__(self) -> int:
        return len(self.stages)

    def __contains__(self, stage: object) -> bool:
        return stage in self.stages

    @property
    def first(self) -> str:
        return self.stages[0]

    @property
    def terminal(self) -> str:
        return self.stages[-1]

    def index(self, stage: str) -> int:
        return self.stages.index(stage)

    def before(self, stage: str) -> tuple[str, ...]:
        """Stages strictly before ``stage``."""
        return self.stages[: self.index(stage)]

    def after(self, stage: str) -> tuple[str, ...]:
        """Stages strictly after ``stage``."""
        return self.stages[self.index(stage) + 1 :]


# =============================================================================
# POLICIES
# =============================================================================


class DependencyPolicy(Enum):
    """How the first stage treats unresolved dependency phases."""

    INFORM = "inform"  # Record a blocker and proceed
    ENFORCE = "enforce"  # Refuse to start the phase


class CorruptionPolicy(Enum):
    """What the router does when a persisted document fails validation."""

    RESTORE = "restore"  # Fall back to the newest usable backup
    FAIL = "fail"  # Surface CorruptState to the caller


# =============================================================================
# IDENTITY
# =============================================================================


@dataclass(frozen=True)
class PhaseId:
    """Typed phase identifier: two-digit sequence plus kebab-case slug."""

    sequence: int
    slug: str

    def __str__(self) -> str:
        return f"{self.sequence:02d}-{self.slug}"

    @property
    def title(self) -> str:
        return " ".join(word.capitalize() for word in self.slug.split("-"))


# =============================================================================
# STAGE RECORDS
# =============================================================================


@dataclass(frozen=True)
class ApprovalRecord:
    """A single approve/reject decision for one stage of one phase."""

    approved: bool
    approver_id: str
    timestamp: str  # ISO 8601
    comments: str = ""
    feedback: tuple[str, ...] = ()
    iteration: int = 1  # Iteration the decision was made on


@dataclass(frozen=True)
class ChangeNote:
    """Structured note left on a downstream artifact by a cascade."""

    origin_stage: str
    description: str
    timestamp: str


@dataclass(frozen=True)
class ArtifactRecord:
    """Reference to a generated stage artifact; content lives elsewhere."""

    reference: str
    generated_at: str
    iteration: int
    needs_revalidation: bool = False
    change_notes: tuple[ChangeNote, ...] = ()


class BlockerType(Enum):
    """Kinds of open blockers on a phase."""

    DEPENDENCY_MISSING = "dependency_missing"
    MANUAL = "manual"


@dataclass(frozen=True)
class Blocker:
    type: BlockerType
    description: str
    reference: str | None = None


@dataclass(frozen=True)
class StageRecord:
    """Everything the workflow tracks for one stage."""

    stage: str
    iteration: int = 0  # Monotonic; 0 until first generated
    approval: ApprovalRecord | None = None
    artifact: ArtifactRecord | None = None

    @property
    def is_approved(self) -> bool:
        return self.approval is not None and self.approval.approved

    @property
    def is_rejected(self) -> bool:
        return self.approval is not None and not self.approval.approved

    @property
    def awaiting_revision(self) -> bool:
        """Rejected and no newer draft has been generated since."""
        if not self.is_rejected or self.approval is None:
            return False
        if self.artifact is None:
            return True
        return self.artifact.iteration <= self.approval.iteration


@dataclass(frozen=True)
class PhaseMetadata:
    created: str
    last_modified: str
    version: str = SCHEMA_VERSION


# =============================================================================
# PHASE STATE
# =============================================================================


@dataclass(frozen=True)
class PhaseState:
    """
    Complete workflow state of one phase.

    ``completed_steps`` and ``current_stage`` are derived from the approval
    records so they can never drift from them.
    """

    phase_id: str
    title: str
    stages: tuple[StageRecord, ...]
    metadata: PhaseMetadata
    blockers: tuple[Blocker, ...] = ()
    dependencies: tuple[str, ...] = ()

    @classmethod
    def initial(
        cls,
        phase_id: str,
        title: str,
        order: StageOrder,
        created: str,
        dependencies: tuple[str, ...] = (),
    ) -> "PhaseState":
        return cls(
            phase_id=phase_id,
            title=title,
            stages=tuple(StageRecord(stage=s) for s in order),
            metadata=PhaseMetadata(created=created, last_modified=created),
            dependencies=tuple(dependencies),
        )

    @property
    def stage_order(self) -> StageOrder:
        return StageOrder(tuple(r.stage for r in self.stages))

    def has_stage(self, stage: str) -> bool:
        return any(r.stage == stage for r in self.stages)

    def record(self, stage: str) -> StageRecord:
        for record in self.stages:
            if record.stage == stage:
                return record
        raise KeyError(f"Stage not tracked for {self.phase_id}: {stage}")

    def is_approved(self, stage: str) -> bool:
        return self.has_stage(stage) and self.record(stage).is_approved

    def iteration(self, stage: str) -> int:
        return self.record(stage).iteration

    @property
    def iterations(self) -> Mapping[str, int]:
        return {r.stage: r.iteration for r in self.stages}

    @property
    def completed_steps(self) -> tuple[str, ...]:
        done: list[str] = []
        for record in self.stages:
            if not record.is_approved:
                break
            done.append(record.stage)
        return tuple(done)

    @property
    def current_stage(self) -> str | None:
        for record in self.stages:
            if not record.is_approved:
                return record.stage
        return None

    @property
    def is_complete(self) -> bool:
        return self.current_stage is None

    @property
    def next_action(self) -> str:
        stage = self.current_stage
        if stage is None:
            return READY_FOR_HANDOFF
        record = self.record(stage)
        if record.awaiting_revision:
            return f"revise_{stage}"
        if record.artifact is None:
            return f"start_{stage}"
        return f"await_{stage}_approval"

    def with_record(self, record: StageRecord) -> "PhaseState":
        self.record(record.stage)  # KeyError for untracked stages
        return replace(
            self,
            stages=tuple(record if r.stage == record.stage else r for r in self.stages),
        )

    def revoke_approvals(self, stages: tuple[str, ...]) -> "PhaseState":
        """Clear approved records for ``stages``; rejections are kept."""
        state = self
        for stage in stages:
            if state.has_stage(stage) and state.record(stage).is_approved:
                state = state.with_record(replace(state.record(stage), approval=None))
        return state


# =============================================================================
# COMPONENT RESULTS
# =============================================================================


@dataclass(frozen=True)
class ApprovalDecision:
    """Inbound approval request for one stage."""

    approved: bool
    approver_id: str = "user"
    comments: str = ""
    feedback: tuple[str, ...] = ()


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of recording a decision: the new state plus what was stored."""

    state: PhaseState
    record: ApprovalRecord
    status: str  # "approved" | "needs_revision"
    next_iteration: int | None = None


@dataclass(frozen=True)
class ApprovalStatus:
    """Read-only projection of one stage's approval slot."""

    stage: str
    approved: bool
    status: str  # approved | needs_revision | pending_approval | not_started
    iteration: int
    approver_id: str | None = None
    timestamp: str | None = None
    comments: str = ""
    feedback: tuple[str, ...] = ()


@dataclass(frozen=True)
class TransitionCheck:
    valid: bool
    missing_prerequisites: tuple[str, ...] = ()
    reason: str = ""


@dataclass(frozen=True)
class Progress:
    completed: int
    total: int
    percentage: int
    current_stage: str | None


@dataclass(frozen=True)
class DependencyReport:
    satisfied: bool
    resolved: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()


@dataclass(frozen=True)
class CorruptionReport:
    corrupted: bool
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class BackupRef:
    """Handle to one backup snapshot of a phase document."""

    phase_id: str
    key: str
    created_at: str


@dataclass(frozen=True)
class GenerationResult:
    """What the external stage generator reports back."""

    artifact_ref: str
    cascade_needed: bool = False
    affects_tasks: bool = False
    summary: str = ""


@dataclass(frozen=True)
class CascadeResult:
    state: PhaseState
    updated: tuple[str, ...] = ()


@dataclass(frozen=True)
class CommandResult:
    """Uniform envelope returned by every router entry point."""

    success: bool
    command: str
    phase_id: str
    data: Mapping[str, Any] = field(default_factory=dict)
    error: str | None = None
    error_kind: str | None = None
    context: Mapping[str, Any] = field(default_factory=dict)
    suggestions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "command": self.command,
            "phase": self.phase_id,
        }
        if self.success:
            result.update(self.data)
        else:
            result["error"] = self.error
            result["errorKind"] = self.error_kind
            result["context"] = dict(self.context)
            result["suggestions"] = list(self.suggestions)
        return result
