"""
Workflow Validator: stage ordering rules.

The chain is fixed. A stage may be (re)generated or approved only when
every stage before it is approved; approval advances exactly one stage and
nothing may be skipped.
"""

from phasegate.domain.models import (
    STATUS_COMMAND,
    PhaseState,
    Progress,
    StageOrder,
    TransitionCheck,
)


class WorkflowValidator:
    """Answers whether a phase may move to a given stage."""

    def __init__(self, order: StageOrder | None = None):
        self._order = order or StageOrder()

    @property
    def order(self) -> StageOrder:
        return self._order

    def is_stage(self, name: str) -> bool:
        return name in self._order

    def precedent_chain(self, stage: str) -> tuple[str, ...]:
        """Stages that must be approved before ``stage``, in order."""
        return self._order.before(stage)

    def downstream_of(self, stage: str) -> tuple[str, ...]:
        return self._order.after(stage)

    def can_transition(self, state: PhaseState, target: str) -> TransitionCheck:
        if target == STATUS_COMMAND:
            return TransitionCheck(valid=True)
        if not self.is_stage(target):
            return TransitionCheck(
                valid=False,
                reason=f"Unknown stage '{target}'; expected one of {', '.join(self._order)}",
            )

        missing = tuple(s for s in self.precedent_chain(target) if not state.is_approved(s))
        if missing:
            return TransitionCheck(
                valid=False,
                missing_prerequisites=missing,
                reason=f"Cannot start {target}: {', '.join(missing)} must be approved first",
            )
        return TransitionCheck(valid=True)

    def progress(self, state: PhaseState) -> Progress:
        total = len(self._order)
        completed = len([s for s in state.completed_steps if s in self._order])
        return Progress(
            completed=completed,
            total=total,
            percentage=round(completed * 100 / total),
            current_stage=state.current_stage,
        )
