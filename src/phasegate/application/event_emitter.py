"""Phase event emission service."""

import uuid
from datetime import datetime, timezone

from phasegate.domain.events import PhaseEvent, PhaseEventType
from phasegate.domain.interfaces import PhaseEventStoreInterface


class PhaseEventEmitter:
    """Emits phase events to a store.

    Provides convenience methods for the transitions the router and the
    cascade coordinator report, handling ID generation and timestamps.
    """

    def __init__(self, event_store: PhaseEventStoreInterface) -> None:
        self._store = event_store

    def _emit(self, event: PhaseEvent) -> str:
        return self._store.store_event(event)

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def stage_generated(
        self, phase_id: str, stage: str, iteration: int, artifact_ref: str
    ) -> None:
        """Emit STAGE_GENERATED after a generator returned an artifact."""
        self._emit(
            PhaseEvent(
                event_id=str(uuid.uuid4()),
                event_type=PhaseEventType.STAGE_GENERATED,
                phase_id=phase_id,
                stage=stage,
                iteration=iteration,
                reference=artifact_ref,
                created_at=self._now(),
            )
        )

    def stage_approved(
        self, phase_id: str, stage: str, iteration: int, approver_id: str
    ) -> None:
        """Emit STAGE_APPROVED when a stage is signed off."""
        self._emit(
            PhaseEvent(
                event_id=str(uuid.uuid4()),
                event_type=PhaseEventType.STAGE_APPROVED,
                phase_id=phase_id,
                stage=stage,
                iteration=iteration,
                actor=approver_id,
                created_at=self._now(),
            )
        )

    def stage_rejected(
        self,
        phase_id: str,
        stage: str,
        iteration: int,
        approver_id: str,
        feedback: tuple[str, ...],
    ) -> None:
        """Emit STAGE_REJECTED with the feedback joined into the summary."""
        self._emit(
            PhaseEvent(
                event_id=str(uuid.uuid4()),
                event_type=PhaseEventType.STAGE_REJECTED,
                phase_id=phase_id,
                stage=stage,
                iteration=iteration,
                actor=approver_id,
                summary="; ".join(feedback)[:500],
                created_at=self._now(),
            )
        )

    def cascade_flagged(self, phase_id: str, origin_stage: str, stage: str) -> None:
        """Emit CASCADE_FLAGGED for each downstream artifact marked for re-validation."""
        self._emit(
            PhaseEvent(
                event_id=str(uuid.uuid4()),
                event_type=PhaseEventType.CASCADE_FLAGGED,
                phase_id=phase_id,
                stage=stage,
                summary=f"upstream change in {origin_stage}",
                created_at=self._now(),
            )
        )

    def tasks_audit(self, phase_id: str, backup_key: str | None, summary: str) -> None:
        """Emit TASKS_AUDIT when an approved task breakdown is affected."""
        self._emit(
            PhaseEvent(
                event_id=str(uuid.uuid4()),
                event_type=PhaseEventType.TASKS_AUDIT,
                phase_id=phase_id,
                stage="tasks",
                reference=backup_key,
                summary=summary,
                created_at=self._now(),
            )
        )

    def state_restored(self, phase_id: str, errors: tuple[str, ...]) -> None:
        """Emit STATE_RESTORED after a corrupted document was replaced by a backup."""
        self._emit(
            PhaseEvent(
                event_id=str(uuid.uuid4()),
                event_type=PhaseEventType.STATE_RESTORED,
                phase_id=phase_id,
                summary="; ".join(errors)[:500],
                created_at=self._now(),
            )
        )
