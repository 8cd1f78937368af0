"""
Cascade Coordinator: propagates upstream changes to downstream artifacts.

Downstream artifacts are never rewritten or deleted. They are flagged for
re-validation and receive a change note describing what moved upstream.
Propagation is pure; the caller reports flagged stages once it has saved.
"""

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from phasegate.domain.models import CascadeResult, ChangeNote, PhaseState, StageOrder

logger = logging.getLogger(__name__)


def describe_change(change: str | Mapping[str, Any]) -> str:
    if isinstance(change, str):
        return change
    return json.dumps(change, sort_keys=True, default=str)


class CascadeCoordinator:
    """Flags every generated artifact after an origin stage."""

    def __init__(
        self,
        order: StageOrder | None = None,
        clock: Callable[[], str] | None = None,
    ):
        self._order = order or StageOrder()
        self._clock = clock or (lambda: datetime.now(timezone.utc).isoformat())

    def propagate(
        self, state: PhaseState, origin_stage: str, change: str | Mapping[str, Any]
    ) -> CascadeResult:
        description = describe_change(change)
        timestamp = self._clock()
        updated: list[str] = []

        for stage in self._order.after(origin_stage):
            if not state.has_stage(stage):
                continue
            record = state.record(stage)
            if record.artifact is None:
                continue
            note = ChangeNote(
                origin_stage=origin_stage, description=description, timestamp=timestamp
            )
            artifact = replace(
                record.artifact,
                needs_revalidation=True,
                change_notes=record.artifact.change_notes + (note,),
            )
            state = state.with_record(replace(record, artifact=artifact))
            updated.append(stage)

        if updated:
            logger.info(
                "%s: %s change flagged %s for re-validation",
                state.phase_id,
                origin_stage,
                ", ".join(updated),
            )
        return CascadeResult(state=state, updated=tuple(updated))
