"""Phase event store implementations."""

import json
from pathlib import Path
from typing import Any

from phasegate.domain.events import PhaseEvent, PhaseEventType
from phasegate.domain.interfaces import PhaseEventStoreInterface


class InMemoryPhaseEventStore(PhaseEventStoreInterface):
    """In-memory implementation for testing."""

    def __init__(self) -> None:
        self._events: list[PhaseEvent] = []

    def store_event(self, event: PhaseEvent) -> str:
        self._events.append(event)
        return event.event_id

    def get_events(
        self,
        phase_id: str,
        event_type: PhaseEventType | None = None,
        stage: str | None = None,
    ) -> list[PhaseEvent]:
        return sorted(
            [
                e
                for e in self._events
                if e.phase_id == phase_id
                and (event_type is None or e.event_type == event_type)
                and (stage is None or e.stage == stage)
            ],
            key=lambda e: e.created_at,
        )


class FilesystemPhaseEventStore(PhaseEventStoreInterface):
    """Filesystem implementation storing one JSONL trail per phase."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = Path(base_path)
        self.events_dir = self.base_path / ".events"
        self.events_dir.mkdir(parents=True, exist_ok=True)

    def _get_phase_file(self, phase_id: str) -> Path:
        return self.events_dir / f"{phase_id}.jsonl"

    def store_event(self, event: PhaseEvent) -> str:
        path = self._get_phase_file(event.phase_id)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(self._event_to_dict(event)) + "\n")
        return event.event_id

    def get_events(
        self,
        phase_id: str,
        event_type: PhaseEventType | None = None,
        stage: str | None = None,
    ) -> list[PhaseEvent]:
        path = self._get_phase_file(phase_id)
        if not path.exists():
            return []
        events: list[PhaseEvent] = []
        with open(path, encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                event = self._dict_to_event(json.loads(line))
                if event_type and event.event_type != event_type:
                    continue
                if stage and event.stage != stage:
                    continue
                events.append(event)
        return sorted(events, key=lambda e: e.created_at)

    def _event_to_dict(self, event: PhaseEvent) -> dict[str, Any]:
        """Serialize event to dict."""
        return {
            "event_id": event.event_id,
            "event_type": event.event_type.value,
            "phase_id": event.phase_id,
            "stage": event.stage,
            "iteration": event.iteration,
            "actor": event.actor,
            "reference": event.reference,
            "summary": event.summary,
            "created_at": event.created_at,
        }

    def _dict_to_event(self, data: dict[str, Any]) -> PhaseEvent:
        """Deserialize dict to event."""
        return PhaseEvent(
            event_id=data["event_id"],
            event_type=PhaseEventType(data["event_type"]),
            phase_id=data["phase_id"],
            stage=data.get("stage"),
            iteration=data.get("iteration"),
            actor=data.get("actor"),
            reference=data.get("reference"),
            summary=data.get("summary", ""),
            created_at=data.get("created_at", ""),
        )
