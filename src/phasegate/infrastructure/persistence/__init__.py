"""
Persistence adapters for phase state and the phase event trail.
"""

from phasegate.infrastructure.persistence.base import BasePhaseStateStore
from phasegate.infrastructure.persistence.events import (
    FilesystemPhaseEventStore,
    InMemoryPhaseEventStore,
)
from phasegate.infrastructure.persistence.filesystem import FilesystemPhaseStateStore
from phasegate.infrastructure.persistence.memory import InMemoryPhaseStateStore

__all__ = [
    "BasePhaseStateStore",
    "InMemoryPhaseStateStore",
    "FilesystemPhaseStateStore",
    "InMemoryPhaseEventStore",
    "FilesystemPhaseEventStore",
]
