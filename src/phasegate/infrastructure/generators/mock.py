"""
Mock stage generator for testing without a document renderer.

Produces deterministic artifact references and records every call.
"""

from collections.abc import Mapping
from typing import Any

from phasegate.domain.interfaces import StageGeneratorInterface
from phasegate.domain.models import TASKS, GenerationResult, PhaseState


class MockStageGenerator(StageGeneratorInterface):
    """Returns a synthetic artifact reference for every stage."""

    def __init__(
        self,
        cascade_stages: tuple[str, ...] = (),
        fail_stages: tuple[str, ...] = (),
    ):
        """
        Args:
            cascade_stages: Stages whose regeneration reports downstream impact
            fail_stages: Stages for which generate() raises RuntimeError
        """
        self._cascade_stages = tuple(cascade_stages)
        self._fail_stages = tuple(fail_stages)
        self._calls: list[tuple[str, str]] = []

    def generate(
        self,
        phase_id: str,
        state: PhaseState,
        stage: str,
        payload: Mapping[str, Any],
    ) -> GenerationResult:
        """Return a reference like ``06-test/spec.md@2``."""
        self._calls.append((phase_id, stage))
        if stage in self._fail_stages:
            raise RuntimeError(f"MockStageGenerator configured to fail on {stage}")

        iteration = max(state.iteration(stage), 1)
        cascade = bool(payload.get("changes")) or stage in self._cascade_stages
        return GenerationResult(
            artifact_ref=f"{phase_id}/{stage}.md@{iteration}",
            cascade_needed=cascade,
            affects_tasks=bool(payload.get("new_tasks")) or stage == TASKS,
            summary=f"mock {stage} for {phase_id}",
        )

    @property
    def calls(self) -> list[tuple[str, str]]:
        """(phase_id, stage) of every generate() call, in order."""
        return list(self._calls)

    @property
    def call_count(self) -> int:
        """Number of times generate() has been called."""
        return len(self._calls)

    def reset(self) -> None:
        """Forget recorded calls."""
        self._calls.clear()
