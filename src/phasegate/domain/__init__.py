"""
Domain layer for the phase approval workflow.

Contains core business logic with no external dependencies.
"""

from phasegate.domain.approvals import ApprovalTracker
from phasegate.domain.events import PhaseEvent, PhaseEventType
from phasegate.domain.exceptions import (
    ConfigurationError,
    CorruptState,
    HierarchicalViolation,
    PhaseGateError,
    RecoveryError,
    ValidationError,
    WorkflowError,
)
from phasegate.domain.interfaces import (
    PhaseEventStoreInterface,
    PhaseStateStoreInterface,
    StageGeneratorInterface,
)
from phasegate.domain.models import (
    ALL_STAGES,
    DEFAULT_STAGES,
    ApprovalDecision,
    ApprovalOutcome,
    ApprovalRecord,
    ApprovalStatus,
    ArtifactRecord,
    BackupRef,
    Blocker,
    BlockerType,
    CascadeResult,
    ChangeNote,
    CommandResult,
    CorruptionPolicy,
    CorruptionReport,
    DependencyPolicy,
    DependencyReport,
    GenerationResult,
    PhaseId,
    PhaseMetadata,
    PhaseState,
    Progress,
    StageOrder,
    StageRecord,
    TransitionCheck,
)
from phasegate.domain.phase_id import (
    PhaseIdResult,
    infer_dependencies,
    is_valid_phase_id,
    parse_phase_id,
)
from phasegate.domain.workflow import WorkflowValidator

__all__ = [
    # Models
    "ALL_STAGES",
    "DEFAULT_STAGES",
    "StageOrder",
    "PhaseId",
    "ApprovalRecord",
    "ArtifactRecord",
    "ChangeNote",
    "Blocker",
    "BlockerType",
    "StageRecord",
    "PhaseMetadata",
    "PhaseState",
    "DependencyPolicy",
    "CorruptionPolicy",
    # Results
    "ApprovalDecision",
    "ApprovalOutcome",
    "ApprovalStatus",
    "TransitionCheck",
    "Progress",
    "DependencyReport",
    "CorruptionReport",
    "BackupRef",
    "GenerationResult",
    "CascadeResult",
    "CommandResult",
    # Rules
    "ApprovalTracker",
    "WorkflowValidator",
    "PhaseIdResult",
    "parse_phase_id",
    "is_valid_phase_id",
    "infer_dependencies",
    # Events
    "PhaseEvent",
    "PhaseEventType",
    # Interfaces
    "PhaseStateStoreInterface",
    "StageGeneratorInterface",
    "PhaseEventStoreInterface",
    # Exceptions
    "PhaseGateError",
    "ValidationError",
    "WorkflowError",
    "HierarchicalViolation",
    "CorruptState",
    "RecoveryError",
    "ConfigurationError",
]
