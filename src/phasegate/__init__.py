"""
phasegate: phase document-approval workflow engine.

A phase moves through a fixed chain of documents (spec, research, plan,
optional prd, tasks). Each stage needs explicit sign-off before the next may
start; state is persisted per phase with backups, dependencies between
phases are resolved on demand, and upstream changes flag downstream
artifacts for re-validation.

Example:
    from phasegate import CommandRouter, InMemoryPhaseStateStore, MockStageGenerator

    router = CommandRouter(InMemoryPhaseStateStore(), MockStageGenerator())
    router.handle("spec", "06-auth-flow")
    router.approve("06-auth-flow", "spec", approver_id="alice")
    result = router.handle("status", "06-auth-flow")
    print(result.data["next_action"])  # start_research
"""

# Application layer (orchestration)
from phasegate.application.cascade import CascadeCoordinator
from phasegate.application.dependency_resolver import DependencyResolver
from phasegate.application.router import CommandRouter

# Wiring
from phasegate.bootstrap import build_router
from phasegate.config import WorkflowSettings, load_settings

# Domain rules
from phasegate.domain.approvals import ApprovalTracker

# Domain exceptions
from phasegate.domain.exceptions import (
    ConfigurationError,
    CorruptState,
    HierarchicalViolation,
    PhaseGateError,
    RecoveryError,
    ValidationError,
    WorkflowError,
)

# Domain interfaces (for type hints and custom implementations)
from phasegate.domain.interfaces import (
    PhaseEventStoreInterface,
    PhaseStateStoreInterface,
    StageGeneratorInterface,
)

# Domain models (most commonly used)
from phasegate.domain.models import (
    ApprovalDecision,
    ApprovalRecord,
    CommandResult,
    CorruptionPolicy,
    DependencyPolicy,
    GenerationResult,
    PhaseState,
    StageOrder,
)
from phasegate.domain.phase_id import parse_phase_id
from phasegate.domain.workflow import WorkflowValidator
from phasegate.infrastructure.generators import MockStageGenerator

# Infrastructure (explicit import encouraged for dependency injection)
from phasegate.infrastructure.persistence import (
    FilesystemPhaseStateStore,
    InMemoryPhaseStateStore,
)
from phasegate.logging_setup import setup_logging

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Application
    "CommandRouter",
    "CascadeCoordinator",
    "DependencyResolver",
    # Wiring
    "WorkflowSettings",
    "load_settings",
    "build_router",
    "setup_logging",
    # Domain
    "ApprovalTracker",
    "WorkflowValidator",
    "parse_phase_id",
    "ApprovalDecision",
    "ApprovalRecord",
    "CommandResult",
    "CorruptionPolicy",
    "DependencyPolicy",
    "GenerationResult",
    "PhaseState",
    "StageOrder",
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
    # Infrastructure
    "InMemoryPhaseStateStore",
    "FilesystemPhaseStateStore",
    "MockStageGenerator",
]
