"""
Domain interfaces (Ports) for the phase approval workflow.

These abstract base classes define the contracts that implementations must satisfy.
They have no external dependencies and represent the core domain boundaries.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from phasegate.domain.events import PhaseEvent, PhaseEventType
    from phasegate.domain.models import (
        BackupRef,
        CorruptionReport,
        GenerationResult,
        PhaseState,
    )


class PhaseStateStoreInterface(ABC):
    """
    Port for phase state persistence.

    One document per phase id, plus an unbounded list of backup snapshots.
    Implementations own the persisted bytes; callers only ever see validated
    PhaseState values.
    """

    @abstractmethod
    def load(
        self, phase_id: str, dependencies: tuple[str, ...] | None = None
    ) -> "PhaseState":
        """
        Load the state of a phase.

        Args:
            phase_id: Phase identifier ("NN-slug")
            dependencies: Declared dependencies for a freshly synthesized
                state; ignored when a document already exists

        Returns:
            The persisted state, or a fresh initial state if none exists.
            Loading never persists.

        Raises:
            CorruptState: If the document is unparsable or fails validation
            ValidationError: If the phase id is malformed
        """
        pass

    @abstractmethod
    def save(self, phase_id: str, state: "PhaseState") -> "PhaseState":
        """
        Validate and persist a state, backing up the previous version first.

        Returns:
            The state as written, with metadata.last_modified stamped

        Raises:
            ValidationError: If the state does not satisfy the schema
        """
        pass

    @abstractmethod
    def backup(self, phase_id: str) -> "BackupRef | None":
        """Snapshot the current document. Returns None if there is nothing to copy."""
        pass

    @abstractmethod
    def restore_from_backup(self, phase_id: str) -> "PhaseState":
        """
        Return the newest backup that parses and validates.

        Raises:
            RecoveryError: If no usable backup exists
        """
        pass

    @abstractmethod
    def detect_corruption(self, phase_id: str) -> "CorruptionReport":
        """Check the persisted document without raising. Absent is not corrupt."""
        pass

    @abstractmethod
    def exists(self, phase_id: str) -> bool:
        """True if a document has been persisted for the phase."""
        pass

    @abstractmethod
    def list_phase_ids(self) -> list[str]:
        """All phase ids with a persisted document, sorted."""
        pass

    @abstractmethod
    def list_backups(self, phase_id: str) -> list["BackupRef"]:
        """Backup snapshots of a phase, newest first."""
        pass


class StageGeneratorInterface(ABC):
    """
    Port for stage artifact generation.

    Implementations render documents (templates, LLMs, humans with an
    editor). The workflow only tracks the returned artifact reference and
    whether downstream stages are affected.
    """

    @abstractmethod
    def generate(
        self,
        phase_id: str,
        state: "PhaseState",
        stage: str,
        payload: "Mapping[str, Any]",
    ) -> "GenerationResult":
        """
        Produce the artifact for one stage.

        Args:
            phase_id: Phase being worked on
            state: Current state, read-only
            stage: Stage to generate
            payload: Caller options passed through by the router

        Returns:
            GenerationResult with the artifact reference and impact flags
        """
        pass


class PhaseEventStoreInterface(ABC):
    """Port for the append-only phase event trail."""

    @abstractmethod
    def store_event(self, event: "PhaseEvent") -> str:
        """
        Append an event.

        Returns:
            The event_id
        """
        pass

    @abstractmethod
    def get_events(
        self,
        phase_id: str,
        event_type: "PhaseEventType | None" = None,
        stage: str | None = None,
    ) -> list["PhaseEvent"]:
        """Events of a phase, oldest first, optionally filtered."""
        pass
