"""
Infrastructure layer for the phase approval workflow.

Contains adapters for external concerns (persistence, generators, registry, console).
"""

from phasegate.infrastructure.console import (
    ConsoleApprovalPrompt,
    print_error,
    print_result,
    render_overview,
    render_status,
)
from phasegate.infrastructure.generators import MockStageGenerator
from phasegate.infrastructure.persistence import (
    FilesystemPhaseEventStore,
    FilesystemPhaseStateStore,
    InMemoryPhaseEventStore,
    InMemoryPhaseStateStore,
)
from phasegate.infrastructure.registry import StageGeneratorRegistry

__all__ = [
    # Persistence
    "InMemoryPhaseStateStore",
    "FilesystemPhaseStateStore",
    "InMemoryPhaseEventStore",
    "FilesystemPhaseEventStore",
    # Generators
    "MockStageGenerator",
    # Registry
    "StageGeneratorRegistry",
    # Console
    "ConsoleApprovalPrompt",
    "render_overview",
    "render_status",
    "print_result",
    "print_error",
]
