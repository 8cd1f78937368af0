"""
Dependency Resolver: checks declared cross-phase dependencies.

A dependency is satisfied when the referenced phase has approved its
terminal stage. Resolution is read-only and never raises for a bad
dependency; every problem simply lands in ``missing``.
"""

import logging
from collections.abc import Sequence

from phasegate.domain.exceptions import PhaseGateError
from phasegate.domain.interfaces import PhaseStateStoreInterface
from phasegate.domain.models import DependencyReport, StageOrder
from phasegate.domain.phase_id import is_valid_phase_id

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Resolves dependency phase ids against a state store."""

    def __init__(self, store: PhaseStateStoreInterface, order: StageOrder | None = None):
        self._store = store
        self._order = order or StageOrder()

    def resolve(self, phase_id: str, declared: Sequence[str]) -> DependencyReport:
        resolved: list[str] = []
        missing: list[str] = []
        for dependency in declared:
            if self._is_complete(phase_id, dependency):
                resolved.append(dependency)
            else:
                missing.append(dependency)

        if missing:
            logger.info("%s: unresolved dependencies %s", phase_id, missing)
        return DependencyReport(
            satisfied=not missing, resolved=tuple(resolved), missing=tuple(missing)
        )

    def _is_complete(self, phase_id: str, dependency: str) -> bool:
        if dependency == phase_id:
            logger.warning("%s declares a dependency on itself", phase_id)
            return False
        if not is_valid_phase_id(dependency):
            logger.warning("%s: malformed dependency id %r", phase_id, dependency)
            return False
        # load() would synthesize a fresh state; a phase that never ran is missing
        if not self._store.exists(dependency):
            return False
        try:
            state = self._store.load(dependency)
        except (PhaseGateError, OSError) as exc:
            logger.warning("%s: dependency %s unreadable: %s", phase_id, dependency, exc)
            return False
        return self._order.terminal in state.completed_steps
