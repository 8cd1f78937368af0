"""Shared pytest fixtures for phasegate tests."""

from collections.abc import Callable

import pytest

from phasegate.application.router import CommandRouter
from phasegate.domain.models import (
    ApprovalRecord,
    ArtifactRecord,
    PhaseState,
    StageOrder,
    StageRecord,
)
from phasegate.infrastructure.generators.mock import MockStageGenerator
from phasegate.infrastructure.persistence.events import InMemoryPhaseEventStore
from phasegate.infrastructure.persistence.memory import InMemoryPhaseStateStore

FIXED_TIME = "2025-01-01T00:00:00+00:00"


@pytest.fixture
def order() -> StageOrder:
    """Default four-stage chain."""
    return StageOrder()


@pytest.fixture
def fresh_state(order: StageOrder) -> PhaseState:
    """A phase that has not started any stage."""
    return PhaseState.initial("06-test", "Test", order, created=FIXED_TIME)


@pytest.fixture
def make_state(order: StageOrder) -> Callable[..., PhaseState]:
    """Build a state with the given stages generated and approved.

    ``approved`` stages get an artifact at iteration 1 and an approval;
    ``generated`` stages only get an artifact.
    """

    def _make(
        approved: tuple[str, ...] = (),
        generated: tuple[str, ...] = (),
        phase_id: str = "06-test",
    ) -> PhaseState:
        state = PhaseState.initial(phase_id, "Test", order, created=FIXED_TIME)
        for stage in (*approved, *generated):
            artifact = ArtifactRecord(
                reference=f"{phase_id}/{stage}.md@1",
                generated_at=FIXED_TIME,
                iteration=1,
            )
            approval = None
            iteration = 1
            if stage in approved:
                approval = ApprovalRecord(
                    approved=True,
                    approver_id="alice",
                    timestamp=FIXED_TIME,
                    iteration=1,
                )
                iteration = 2
            state = state.with_record(
                StageRecord(
                    stage=stage, iteration=iteration, approval=approval, artifact=artifact
                )
            )
        return state

    return _make


@pytest.fixture
def memory_store(order: StageOrder) -> InMemoryPhaseStateStore:
    """Create an in-memory phase state store."""
    return InMemoryPhaseStateStore(order=order)


@pytest.fixture
def event_store() -> InMemoryPhaseEventStore:
    """Create an in-memory event store."""
    return InMemoryPhaseEventStore()


@pytest.fixture
def mock_generator() -> MockStageGenerator:
    """Create a mock generator that never cascades on its own."""
    return MockStageGenerator()


@pytest.fixture
def router(
    memory_store: InMemoryPhaseStateStore,
    mock_generator: MockStageGenerator,
    event_store: InMemoryPhaseEventStore,
    order: StageOrder,
) -> CommandRouter:
    """Router over in-memory adapters with the default policies."""
    return CommandRouter(
        memory_store, mock_generator, order=order, event_store=event_store
    )


@pytest.fixture
def complete_phase(router: CommandRouter) -> Callable[[str], None]:
    """Drive a phase through every stage with approvals."""

    def _complete(phase_id: str) -> None:
        for stage in ("spec", "research", "plan", "tasks"):
            assert router.handle(stage, phase_id).success
            assert router.approve(phase_id, stage, approver_id="alice").success

    return _complete
