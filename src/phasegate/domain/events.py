"""Phase event trail models."""

from dataclasses import dataclass
from enum import Enum


class PhaseEventType(str, Enum):
    """Types of phase workflow events."""

    STAGE_GENERATED = "STAGE_GENERATED"
    STAGE_APPROVED = "STAGE_APPROVED"
    STAGE_REJECTED = "STAGE_REJECTED"
    CASCADE_FLAGGED = "CASCADE_FLAGGED"
    TASKS_AUDIT = "TASKS_AUDIT"
    STATE_RESTORED = "STATE_RESTORED"


@dataclass(frozen=True)
class PhaseEvent:
    """Single recorded transition of a phase.

    Events are an append-only trail next to the phase document; the document
    stays the source of truth for workflow state.
    """

    event_id: str
    event_type: PhaseEventType
    phase_id: str
    stage: str | None = None
    iteration: int | None = None
    actor: str | None = None
    reference: str | None = None  # Artifact ref or backup key
    summary: str = ""
    created_at: str = ""  # ISO 8601
