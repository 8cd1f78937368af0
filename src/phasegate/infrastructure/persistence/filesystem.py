"""
Filesystem implementation of the phase state store.

Layout::

    <root>/<phase_id>/.phase-state.json
    <root>/<phase_id>/.phase-state.backup.<UTC timestamp>.<seq>.json

Documents are replaced with write-to-temp + rename so a crash mid-write
leaves either the old or the new version on disk.
"""

import os
from pathlib import Path

from phasegate.domain.models import StageOrder
from phasegate.infrastructure.persistence.base import (
    BACKUP_PREFIX,
    BACKUP_SUFFIX,
    STATE_FILENAME,
    BasePhaseStateStore,
)


class FilesystemPhaseStateStore(BasePhaseStateStore):
    """Persistent store keeping one directory per phase."""

    def __init__(
        self,
        root: str | Path,
        order: StageOrder | None = None,
        infer_dependencies: bool = False,
    ):
        super().__init__(order=order, infer_dependencies=infer_dependencies)
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def state_path(self, phase_id: str) -> Path:
        return self._root / phase_id / STATE_FILENAME

    def _read(self, phase_id: str) -> str | None:
        path = self.state_path(phase_id)
        if not path.exists():
            return None
        # Undecodable bytes surface as a JSON error rather than an exception
        return path.read_text(encoding="utf-8", errors="replace")

    def _write(self, phase_id: str, text: str) -> None:
        path = self.state_path(phase_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(temp_path, path)  # Atomic on POSIX

    def _backup_keys(self, phase_id: str) -> list[str]:
        phase_dir = self._root / phase_id
        if not phase_dir.is_dir():
            return []
        return [
            p.name
            for p in phase_dir.iterdir()
            if p.name.startswith(BACKUP_PREFIX) and p.name.endswith(BACKUP_SUFFIX)
        ]

    def _read_backup(self, phase_id: str, key: str) -> str | None:
        path = self._root / phase_id / key
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8", errors="replace")

    def _write_backup(self, phase_id: str, key: str, text: str) -> None:
        path = self._root / phase_id / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    def _phase_ids(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return [p.name for p in self._root.iterdir() if (p / STATE_FILENAME).exists()]
