"""
Application layer for the phase approval workflow.

Contains the use cases that orchestrate domain rules over the ports.
"""

from phasegate.application.cascade import CascadeCoordinator
from phasegate.application.dependency_resolver import DependencyResolver
from phasegate.application.event_emitter import PhaseEventEmitter
from phasegate.application.router import CommandRouter, recovery_suggestions
from phasegate.application.status import build_overview_row, build_status_report

__all__ = [
    "CommandRouter",
    "CascadeCoordinator",
    "DependencyResolver",
    "PhaseEventEmitter",
    "build_overview_row",
    "build_status_report",
    "recovery_suggestions",
]
