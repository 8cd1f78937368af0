"""
Shared behaviour of the phase state stores.

Adapters only provide raw text primitives; validation, backups, stamping
and recovery live here so every backend behaves identically.
"""

import json
import logging
from abc import abstractmethod
from dataclasses import replace
from datetime import datetime, timezone

from phasegate.domain.exceptions import CorruptState, RecoveryError, ValidationError
from phasegate.domain.interfaces import PhaseStateStoreInterface
from phasegate.domain.models import (
    BackupRef,
    CorruptionReport,
    PhaseState,
    StageOrder,
    StageRecord,
)
from phasegate.domain.phase_id import infer_dependencies, parse_phase_id
from phasegate.infrastructure.persistence.serialization import (
    dict_to_state,
    invariant_errors,
    state_to_dict,
)
from phasegate.schemas import phase_state_errors

logger = logging.getLogger(__name__)

STATE_FILENAME = ".phase-state.json"
BACKUP_PREFIX = ".phase-state.backup."
BACKUP_SUFFIX = ".json"
_STAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"


def backup_key(stamp: datetime, sequence: int) -> str:
    """Backup keys sort lexicographically oldest to newest."""
    return f"{BACKUP_PREFIX}{stamp.strftime(_STAMP_FORMAT)}.{sequence:06d}{BACKUP_SUFFIX}"


def backup_created_at(key: str) -> str:
    stamp = key[len(BACKUP_PREFIX) :].split(".", 1)[0]
    try:
        return datetime.strptime(stamp, _STAMP_FORMAT).replace(tzinfo=timezone.utc).isoformat()
    except ValueError:
        return ""


class BasePhaseStateStore(PhaseStateStoreInterface):
    """
    Template for stores that persist one JSON document per phase.

    Subclasses implement the ``_read``/``_write`` primitives. Everything a
    caller can observe (schema validation, invariant checks, backups before
    overwrite, newest-first restore) is implemented once here.
    """

    def __init__(self, order: StageOrder | None = None, infer_dependencies: bool = False):
        self._order = order or StageOrder()
        self._infer_dependencies = infer_dependencies

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _read(self, phase_id: str) -> str | None:
        """Raw document text, or None if no document exists."""

    @abstractmethod
    def _write(self, phase_id: str, text: str) -> None:
        """Replace the document atomically."""

    @abstractmethod
    def _backup_keys(self, phase_id: str) -> list[str]:
        """Keys of all backups of a phase, any order."""

    @abstractmethod
    def _read_backup(self, phase_id: str, key: str) -> str | None:
        """Raw text of one backup."""

    @abstractmethod
    def _write_backup(self, phase_id: str, key: str, text: str) -> None:
        """Store one backup."""

    @abstractmethod
    def _phase_ids(self) -> list[str]:
        """Ids of all phases with a document."""

    # ------------------------------------------------------------------
    # Port
    # ------------------------------------------------------------------

    def load(self, phase_id: str, dependencies: tuple[str, ...] | None = None) -> PhaseState:
        text = self._read(phase_id)
        if text is None:
            return self._initial_state(phase_id, dependencies)

        state, errors = self._parse(phase_id, text)
        if state is None:
            logger.warning("State for %s is corrupted: %s", phase_id, "; ".join(errors))
            raise CorruptState(
                f"State document for {phase_id} is corrupted", phase_id, tuple(errors)
            )
        return state

    def save(self, phase_id: str, state: PhaseState) -> PhaseState:
        if state.phase_id != phase_id:
            raise ValidationError(
                f"State belongs to {state.phase_id}, not {phase_id}",
                field="phase_id",
                value=phase_id,
            )
        stamped = replace(
            state, metadata=replace(state.metadata, last_modified=self._now())
        )
        data = state_to_dict(stamped)
        # The loader rejects what fails either check, so neither may be written
        errors = phase_state_errors(data) or invariant_errors(data, stamped)
        if errors:
            raise ValidationError(
                f"Refusing to save invalid state for {phase_id}",
                field="state",
                errors=tuple(errors),
            )

        try:
            self.backup(phase_id)
        except OSError as exc:
            logger.warning("Backup of %s failed, saving anyway: %s", phase_id, exc)

        self._write(phase_id, json.dumps(data, indent=2) + "\n")
        logger.debug("Saved %s (next action: %s)", phase_id, stamped.next_action)
        return stamped

    def backup(self, phase_id: str) -> BackupRef | None:
        text = self._read(phase_id)
        if text is None:
            return None
        now = datetime.now(timezone.utc)
        key = backup_key(now, len(self._backup_keys(phase_id)))
        self._write_backup(phase_id, key, text)
        logger.debug("Backed up %s as %s", phase_id, key)
        return BackupRef(phase_id=phase_id, key=key, created_at=now.isoformat())

    def restore_from_backup(self, phase_id: str) -> PhaseState:
        keys = sorted(self._backup_keys(phase_id), reverse=True)
        if not keys:
            raise RecoveryError(f"No backups exist for {phase_id}", phase_id)

        for key in keys:
            text = self._read_backup(phase_id, key)
            if text is None:
                continue
            state, errors = self._parse(phase_id, text)
            if state is not None:
                logger.info("Restored %s from backup %s", phase_id, key)
                return state
            logger.warning("Skipping unusable backup %s of %s: %s", key, phase_id, errors[0])

        raise RecoveryError(
            f"No usable backup for {phase_id}", phase_id, attempted=tuple(keys)
        )

    def detect_corruption(self, phase_id: str) -> CorruptionReport:
        try:
            text = self._read(phase_id)
        except OSError as exc:
            return CorruptionReport(corrupted=True, errors=(f"<root>: unreadable: {exc}",))
        if text is None:
            return CorruptionReport(corrupted=False)
        state, errors = self._parse(phase_id, text)
        if state is None:
            return CorruptionReport(corrupted=True, errors=tuple(errors))
        return CorruptionReport(corrupted=False)

    def exists(self, phase_id: str) -> bool:
        return self._read(phase_id) is not None

    def list_phase_ids(self) -> list[str]:
        return sorted(self._phase_ids())

    def list_backups(self, phase_id: str) -> list[BackupRef]:
        return [
            BackupRef(phase_id=phase_id, key=key, created_at=backup_created_at(key))
            for key in sorted(self._backup_keys(phase_id), reverse=True)
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _initial_state(
        self, phase_id: str, dependencies: tuple[str, ...] | None
    ) -> PhaseState:
        parsed = parse_phase_id(phase_id)
        if parsed.phase_id is None:
            raise ValidationError(
                parsed.error or "Invalid phase id", field="phase_id", value=phase_id
            )

        if dependencies is None:
            dependencies = ()
            if self._infer_dependencies:
                dependencies = infer_dependencies(phase_id, self._phase_ids())
                if dependencies:
                    logger.info("Inferred dependencies for %s: %s", phase_id, list(dependencies))

        return PhaseState.initial(
            phase_id=phase_id,
            title=parsed.phase_id.title,
            order=self._order,
            created=self._now(),
            dependencies=tuple(dependencies),
        )

    def _parse(self, phase_id: str, text: str) -> tuple[PhaseState | None, list[str]]:
        """Parse and fully validate a document. Never returns a partial state."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            return None, [f"<root>: invalid JSON: {exc}"]

        errors = phase_state_errors(data)
        if errors:
            return None, errors

        if data["phase"] != phase_id:
            return None, [f"phase: document belongs to {data['phase']!r}, not {phase_id!r}"]

        state = dict_to_state(data)
        errors = invariant_errors(data, state)
        if errors:
            return None, errors

        return self._align(state)

    def _align(self, state: PhaseState) -> tuple[PhaseState | None, list[str]]:
        """Fit a parsed state to this store's stage order."""
        tracked = {r.stage for r in state.stages}
        unknown = sorted(tracked - set(self._order))
        if unknown:
            return None, [f"iterations: stages not enabled in this workflow: {unknown}"]
        if tracked == set(self._order):
            return state, []
        stages = tuple(
            state.record(stage) if stage in tracked else StageRecord(stage=stage)
            for stage in self._order
        )
        return replace(state, stages=stages), []
