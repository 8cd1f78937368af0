"""
In-memory implementation of the phase state store.

Useful for testing and ephemeral workflows. Documents are held as the same
JSON text the filesystem store writes, so corruption can be simulated by
overwriting ``_documents`` directly.
"""

from phasegate.domain.models import StageOrder
from phasegate.infrastructure.persistence.base import BasePhaseStateStore


class InMemoryPhaseStateStore(BasePhaseStateStore):
    """Simple in-memory store for testing."""

    def __init__(self, order: StageOrder | None = None, infer_dependencies: bool = False):
        super().__init__(order=order, infer_dependencies=infer_dependencies)
        self._documents: dict[str, str] = {}
        self._backups: dict[str, dict[str, str]] = {}

    def _read(self, phase_id: str) -> str | None:
        return self._documents.get(phase_id)

    def _write(self, phase_id: str, text: str) -> None:
        self._documents[phase_id] = text

    def _backup_keys(self, phase_id: str) -> list[str]:
        return list(self._backups.get(phase_id, {}))

    def _read_backup(self, phase_id: str, key: str) -> str | None:
        return self._backups.get(phase_id, {}).get(key)

    def _write_backup(self, phase_id: str, key: str, text: str) -> None:
        self._backups.setdefault(phase_id, {})[key] = text

    def _phase_ids(self) -> list[str]:
        return list(self._documents)
