"""
Command Router: the single entry point for phase commands.

Every call runs load -> check -> act -> persist for one phase and returns a
CommandResult. No exception escapes; failures are reported in the envelope
with the error kind, its structured context and recovery suggestions.
"""

import logging
import threading
import weakref
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from functools import partial
from typing import Any

from phasegate.application.cascade import CascadeCoordinator
from phasegate.application.dependency_resolver import DependencyResolver
from phasegate.application.event_emitter import PhaseEventEmitter
from phasegate.application.status import build_overview_row, build_status_report
from phasegate.domain.approvals import ApprovalTracker
from phasegate.domain.exceptions import (
    CorruptState,
    HierarchicalViolation,
    PhaseGateError,
    RecoveryError,
    ValidationError,
    WorkflowError,
)
from phasegate.domain.interfaces import (
    PhaseEventStoreInterface,
    PhaseStateStoreInterface,
    StageGeneratorInterface,
)
from phasegate.domain.models import (
    APPROVE_COMMAND,
    STATUS_COMMAND,
    TASKS,
    ApprovalDecision,
    ArtifactRecord,
    Blocker,
    BlockerType,
    CommandResult,
    CorruptionPolicy,
    DependencyPolicy,
    DependencyReport,
    PhaseState,
    StageOrder,
)
from phasegate.domain.phase_id import parse_phase_id
from phasegate.domain.workflow import WorkflowValidator

logger = logging.getLogger(__name__)

DECLARE_DEPENDENCIES_COMMAND = "declare_dependencies"
OVERVIEW_COMMAND = "overview"
RECORD_BLOCKER_COMMAND = "record_blocker"
CLEAR_BLOCKERS_COMMAND = "clear_blockers"
INTERNAL_ERROR = "InternalError"


def recovery_suggestions(error: Exception, phase_id: str) -> tuple[str, ...]:
    """Human-oriented next steps for a failed command."""
    if isinstance(error, WorkflowError):
        if error.missing_dependencies:
            return (
                f"Complete dependency phases first: {', '.join(error.missing_dependencies)}",
                "Or switch dependency_policy to 'inform' to record a blocker instead",
            )
        if error.required_steps:
            first = error.required_steps[0]
            return (
                f"Run '{first}' for {phase_id} and approve it before continuing",
                f"Check progress with 'status {phase_id}'",
            )
        return (f"Check progress with 'status {phase_id}'",)
    if isinstance(error, HierarchicalViolation):
        return (
            f"Approve or re-validate {', '.join(error.unmet_precedents)} before "
            f"changing {error.target_stage}",
        )
    if isinstance(error, CorruptState):
        return (
            f"Restore {phase_id} from its newest backup",
            "Or set corruption_policy to 'restore' to recover automatically",
        )
    if isinstance(error, RecoveryError):
        return (
            f"No usable backup of {phase_id}; repair or remove its state document by hand",
        )
    if isinstance(error, ValidationError):
        return ("Check the command name, the phase id (NN-slug) and the stage name",)
    return ("Re-run with verbose logging and inspect the log for the traceback",)


class CommandRouter:
    """
    Routes stage, status and approval commands for phases.

    Operations on the same phase id are serialized through a per-phase lock;
    different phases never contend. Events are only appended to the trail
    once the state change they describe has been saved.
    """

    def __init__(
        self,
        store: PhaseStateStoreInterface,
        generator: StageGeneratorInterface,
        order: StageOrder | None = None,
        dependency_policy: DependencyPolicy = DependencyPolicy.INFORM,
        corruption_policy: CorruptionPolicy = CorruptionPolicy.RESTORE,
        event_store: PhaseEventStoreInterface | None = None,
        clock: Callable[[], str] | None = None,
    ):
        """
        Args:
            store: Phase state persistence
            generator: Produces stage artifacts
            order: Stage chain (default spec, research, plan, tasks)
            dependency_policy: Whether unresolved dependencies block the first stage
            corruption_policy: Restore from backup or fail on a corrupt document
            event_store: Optional event trail
            clock: Timestamp source, ISO 8601 strings
        """
        self._store = store
        self._generator = generator
        self._order = order or StageOrder()
        self._dependency_policy = dependency_policy
        self._corruption_policy = corruption_policy
        self._clock = clock or (lambda: datetime.now(timezone.utc).isoformat())
        self._emitter = PhaseEventEmitter(event_store) if event_store else None

        self._validator = WorkflowValidator(self._order)
        self._tracker = ApprovalTracker(clock=self._clock)
        self._resolver = DependencyResolver(store, self._order)
        self._cascade = CascadeCoordinator(self._order, self._clock)

        # Entries disappear once no caller holds the lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    @property
    def validator(self) -> WorkflowValidator:
        return self._validator

    @property
    def commands(self) -> tuple[str, ...]:
        return tuple(self._order) + (STATUS_COMMAND,)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle(
        self, command: str, phase_id: str, options: Mapping[str, Any] | None = None
    ) -> CommandResult:
        """
        Execute a stage command or report status.

        Args:
            command: One of the stage names, or "status"
            phase_id: Phase to act on ("NN-slug")
            options: Payload passed through to the generator. A "changes"
                entry marks the call as a change to an existing stage.

        Returns:
            CommandResult; never raises
        """
        payload = dict(options or {})
        pending: list[Callable[[], None]] = []
        try:
            self._validate_command(command)
            self._validate_phase_id(phase_id)
            with self._phase_lock(phase_id):
                state = self._load(phase_id, pending)
                if command == STATUS_COMMAND:
                    state, _ = self._refresh_dependency_blockers(state)
                    data = build_status_report(state, self._validator, self._tracker)
                    if pending:
                        logger.debug("%s: restored state not persisted by status", phase_id)
                    return CommandResult(
                        success=True, command=command, phase_id=phase_id, data=data
                    )
                data = self._run_stage(state, command, payload, pending)
                self._flush(pending)
            return CommandResult(success=True, command=command, phase_id=phase_id, data=data)
        except Exception as exc:
            return self._failure(command, phase_id, exc)

    def approve(
        self,
        phase_id: str,
        stage: str,
        approved: bool = True,
        approver_id: str = "user",
        comments: str = "",
        feedback: Sequence[str] = (),
    ) -> CommandResult:
        """
        Record an approval decision for a generated stage.

        Rejections cascade to downstream artifacts so they are re-validated
        once the revised stage is approved.
        """
        pending: list[Callable[[], None]] = []
        try:
            self._validate_phase_id(phase_id)
            if not self._validator.is_stage(stage):
                raise ValidationError(
                    f"Unknown stage '{stage}'; expected one of {', '.join(self._order)}",
                    field="stage",
                    value=stage,
                )
            if isinstance(feedback, str):
                feedback = (feedback,)
            decision = ApprovalDecision(
                approved=approved,
                approver_id=approver_id,
                comments=comments,
                feedback=tuple(feedback),
            )
            with self._phase_lock(phase_id):
                state = self._load(phase_id, pending)
                data = self._record_decision(state, stage, decision, pending)
                self._flush(pending)
            return CommandResult(
                success=True, command=APPROVE_COMMAND, phase_id=phase_id, data=data
            )
        except Exception as exc:
            return self._failure(APPROVE_COMMAND, phase_id, exc)

    def declare_dependencies(self, phase_id: str, dependency_ids: Sequence[str]) -> CommandResult:
        """Replace the declared dependency list of a phase."""
        pending: list[Callable[[], None]] = []
        try:
            self._validate_phase_id(phase_id)
            dependencies = tuple(dict.fromkeys(dependency_ids))
            for dependency in dependencies:
                self._validate_phase_id(dependency, field="dependencies")
                if dependency == phase_id:
                    raise ValidationError(
                        f"{phase_id} cannot depend on itself",
                        field="dependencies",
                        value=dependency,
                    )
            with self._phase_lock(phase_id):
                state = self._load(phase_id, pending)
                state = replace(state, dependencies=dependencies)
                saved = self._store.save(phase_id, state)
                self._flush(pending)
            logger.info("%s: dependencies set to %s", phase_id, list(dependencies))
            return CommandResult(
                success=True,
                command=DECLARE_DEPENDENCIES_COMMAND,
                phase_id=phase_id,
                data={"dependencies": list(saved.dependencies)},
            )
        except Exception as exc:
            return self._failure(DECLARE_DEPENDENCIES_COMMAND, phase_id, exc)

    def record_blocker(self, phase_id: str, description: str) -> CommandResult:
        """Attach a manual note to a phase; it is listed with the other blockers."""
        pending: list[Callable[[], None]] = []
        try:
            self._validate_phase_id(phase_id)
            description = description.strip()
            if not description:
                raise ValidationError(
                    "A manual blocker needs a description", field="description", value=""
                )
            with self._phase_lock(phase_id):
                state = self._load(phase_id, pending)
                blocker = Blocker(
                    type=BlockerType.MANUAL, description=description, reference=self._clock()
                )
                saved = self._store.save(
                    phase_id, replace(state, blockers=state.blockers + (blocker,))
                )
                self._flush(pending)
            logger.info("%s: manual blocker recorded", phase_id)
            return CommandResult(
                success=True,
                command=RECORD_BLOCKER_COMMAND,
                phase_id=phase_id,
                data={"blockers": _blocker_dicts(saved.blockers)},
            )
        except Exception as exc:
            return self._failure(RECORD_BLOCKER_COMMAND, phase_id, exc)

    def clear_blockers(self, phase_id: str) -> CommandResult:
        """Remove every manual blocker. Dependency blockers are left to the resolver."""
        pending: list[Callable[[], None]] = []
        try:
            self._validate_phase_id(phase_id)
            with self._phase_lock(phase_id):
                state = self._load(phase_id, pending)
                kept = tuple(b for b in state.blockers if b.type != BlockerType.MANUAL)
                cleared = len(state.blockers) - len(kept)
                saved = state
                if cleared:
                    saved = self._store.save(phase_id, replace(state, blockers=kept))
                    self._flush(pending)
            logger.info("%s: %d manual blocker(s) cleared", phase_id, cleared)
            return CommandResult(
                success=True,
                command=CLEAR_BLOCKERS_COMMAND,
                phase_id=phase_id,
                data={"cleared": cleared, "blockers": _blocker_dicts(saved.blockers)},
            )
        except Exception as exc:
            return self._failure(CLEAR_BLOCKERS_COMMAND, phase_id, exc)

    def overview(self) -> CommandResult:
        """
        Summarize every persisted phase: stage status, progress, next action.

        Read-only. A phase that cannot be loaded is listed with its error
        instead of failing the whole overview.
        """
        try:
            rows = []
            for phase_id in self._store.list_phase_ids():
                with self._phase_lock(phase_id):
                    try:
                        state = self._load(phase_id, [])
                    except PhaseGateError as exc:
                        logger.warning("overview: %s unreadable: %s", phase_id, exc.message)
                        rows.append(
                            {"phase": phase_id, "error": exc.message, "error_kind": exc.kind}
                        )
                        continue
                    state, _ = self._refresh_dependency_blockers(state)
                rows.append(build_overview_row(state, self._validator, self._tracker))
            return CommandResult(
                success=True,
                command=OVERVIEW_COMMAND,
                phase_id="*",
                data={"phases": rows, "stages": list(self._order)},
            )
        except Exception as exc:
            return self._failure(OVERVIEW_COMMAND, "*", exc)

    # ------------------------------------------------------------------
    # Stage execution
    # ------------------------------------------------------------------

    def _run_stage(
        self,
        state: PhaseState,
        stage: str,
        payload: dict[str, Any],
        pending: list[Callable[[], None]],
    ) -> dict[str, Any]:
        phase_id = state.phase_id
        changes = payload.get("changes")
        if changes:
            self._check_precedence(state, stage)

        check = self._validator.can_transition(state, stage)
        if not check.valid:
            raise WorkflowError(
                check.reason,
                current_stage=state.current_stage,
                required_steps=check.missing_prerequisites,
            )

        state, dependency_report = self._refresh_dependency_blockers(state)
        if stage == self._order.first:
            self._gate_first_stage(state, dependency_report)
        else:
            dependency_report = None

        record = state.record(stage)
        tasks_approved_before = state.is_approved(TASKS)

        result = self._generator.generate(phase_id, state, stage, payload)

        iteration = max(record.iteration, 1)
        previous_notes = record.artifact.change_notes if record.artifact else ()
        artifact = ArtifactRecord(
            reference=result.artifact_ref,
            generated_at=self._clock(),
            iteration=iteration,
            change_notes=previous_notes,
        )
        state = state.with_record(replace(record, iteration=iteration, artifact=artifact))
        if record.is_approved:
            # A regenerated stage needs fresh sign-off, and so does everything after it
            state = state.revoke_approvals((stage,) + self._order.after(stage))
            logger.info("%s: %s regenerated, approvals revoked from %s on", phase_id, stage, stage)
        if self._emitter:
            pending.append(
                partial(
                    self._emitter.stage_generated, phase_id, stage, iteration, result.artifact_ref
                )
            )

        updated: tuple[str, ...] = ()
        if result.cascade_needed:
            change = changes or f"{stage} regenerated (iteration {iteration})"
            state, updated = self._propagate(state, stage, change, pending)

        audit = None
        if tasks_approved_before and (stage == TASKS or TASKS in updated or result.affects_tasks):
            audit = self._audit_tasks(phase_id, stage, payload, pending)

        saved = self._store.save(phase_id, state)
        logger.info(
            "%s: %s generated (iteration %d) -> %s",
            phase_id,
            stage,
            iteration,
            saved.next_action,
        )

        progress = self._validator.progress(saved)
        data: dict[str, Any] = {
            "stage": stage,
            "artifact": result.artifact_ref,
            "iteration": iteration,
            "current_stage": saved.current_stage,
            "next_action": saved.next_action,
            "completed_steps": list(saved.completed_steps),
            "progress": {
                "completed": progress.completed,
                "total": progress.total,
                "percentage": progress.percentage,
            },
            "cascade": {"updated": list(updated)},
            "timestamp": saved.metadata.last_modified,
        }
        if result.summary:
            data["summary"] = result.summary
        if dependency_report is not None:
            data["dependencies"] = {
                "satisfied": dependency_report.satisfied,
                "resolved": list(dependency_report.resolved),
                "missing": list(dependency_report.missing),
            }
        if audit is not None:
            data["audit"] = audit
        return data

    def _check_precedence(self, state: PhaseState, stage: str) -> None:
        unmet = []
        for precedent in self._validator.precedent_chain(stage):
            record = state.record(precedent)
            flagged = record.artifact is not None and record.artifact.needs_revalidation
            if not record.is_approved or flagged:
                unmet.append(precedent)
        if unmet:
            raise HierarchicalViolation(
                f"Cannot change {stage}: {', '.join(unmet)} must be approved and validated first",
                target_stage=stage,
                unmet_precedents=tuple(unmet),
            )

    def _refresh_dependency_blockers(
        self, state: PhaseState
    ) -> tuple[PhaseState, DependencyReport]:
        """Replace dependency blockers with the resolver's current view."""
        report = self._resolver.resolve(state.phase_id, state.dependencies)
        others = tuple(b for b in state.blockers if b.type != BlockerType.DEPENDENCY_MISSING)
        blockers = tuple(
            Blocker(
                type=BlockerType.DEPENDENCY_MISSING,
                description=f"Dependency {missing} has not completed {self._order.terminal}",
                reference=missing,
            )
            for missing in report.missing
        )
        return replace(state, blockers=others + blockers), report

    def _gate_first_stage(self, state: PhaseState, report: DependencyReport) -> None:
        if report.satisfied:
            return
        if self._dependency_policy == DependencyPolicy.ENFORCE:
            raise WorkflowError(
                f"{state.phase_id} depends on unfinished phases: {', '.join(report.missing)}",
                current_stage=state.current_stage,
                missing_dependencies=report.missing,
            )
        logger.warning(
            "%s: proceeding with unresolved dependencies %s",
            state.phase_id,
            list(report.missing),
        )

    def _propagate(
        self,
        state: PhaseState,
        origin_stage: str,
        change: str,
        pending: list[Callable[[], None]],
    ) -> tuple[PhaseState, tuple[str, ...]]:
        cascade = self._cascade.propagate(state, origin_stage, change)
        if self._emitter:
            for flagged in cascade.updated:
                pending.append(
                    partial(
                        self._emitter.cascade_flagged, state.phase_id, origin_stage, flagged
                    )
                )
        return cascade.state, cascade.updated

    def _audit_tasks(
        self,
        phase_id: str,
        stage: str,
        payload: Mapping[str, Any],
        pending: list[Callable[[], None]],
    ) -> dict[str, Any]:
        try:
            backup = self._store.backup(phase_id)
        except OSError as exc:
            logger.warning("%s: tasks audit backup failed, continuing: %s", phase_id, exc)
            backup = None
        backup_key = backup.key if backup else None
        new_tasks = payload.get("new_tasks") or ()
        summary = f"approved tasks affected by {stage}"
        if new_tasks:
            summary += f"; {len(new_tasks)} new task(s) proposed"
        if self._emitter:
            pending.append(partial(self._emitter.tasks_audit, phase_id, backup_key, summary))
        logger.info("%s: tasks audit, backup %s", phase_id, backup_key)
        return {
            "backup": backup_key,
            "changes_reviewed": len(new_tasks),
            "summary": summary,
        }

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    def _record_decision(
        self,
        state: PhaseState,
        stage: str,
        decision: ApprovalDecision,
        pending: list[Callable[[], None]],
    ) -> dict[str, Any]:
        phase_id = state.phase_id
        check = self._validator.can_transition(state, stage)
        if not check.valid:
            raise WorkflowError(
                f"Cannot approve {stage}: "
                f"{', '.join(check.missing_prerequisites)} must be approved first",
                current_stage=state.current_stage,
                required_steps=check.missing_prerequisites,
            )
        if state.record(stage).artifact is None:
            raise WorkflowError(
                f"Cannot approve {stage}: no {stage} artifact has been generated for {phase_id}",
                current_stage=state.current_stage,
                required_steps=(stage,),
            )

        outcome = self._tracker.record_decision(state, stage, decision)
        state = outcome.state
        updated: tuple[str, ...] = ()
        iteration = outcome.record.iteration
        if decision.approved:
            if self._emitter:
                pending.append(
                    partial(
                        self._emitter.stage_approved,
                        phase_id,
                        stage,
                        iteration,
                        decision.approver_id,
                    )
                )
        else:
            if self._emitter:
                pending.append(
                    partial(
                        self._emitter.stage_rejected,
                        phase_id,
                        stage,
                        iteration,
                        decision.approver_id,
                        decision.feedback,
                    )
                )
            change = f"{stage} rejected at iteration {iteration}"
            if decision.feedback:
                change += ": " + "; ".join(decision.feedback)
            state, updated = self._propagate(state, stage, change, pending)

        saved = self._store.save(phase_id, state)
        record = outcome.record
        return {
            "stage": stage,
            "status": outcome.status,
            "record": {
                "approved": record.approved,
                "approver": record.approver_id,
                "timestamp": record.timestamp,
                "comments": record.comments,
                "feedback": list(record.feedback),
                "iteration": record.iteration,
            },
            "next_iteration": outcome.next_iteration,
            "current_stage": saved.current_stage,
            "next_action": saved.next_action,
            "completed_steps": list(saved.completed_steps),
            "cascade": {"updated": list(updated)},
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_command(self, command: str) -> None:
        if command not in self.commands:
            raise ValidationError(
                f"Unknown command '{command}'; expected one of {', '.join(self.commands)}",
                field="command",
                value=command,
            )

    def _validate_phase_id(self, phase_id: str, field: str = "phase_id") -> None:
        parsed = parse_phase_id(phase_id)
        if not parsed.ok:
            raise ValidationError(parsed.error or "Invalid phase id", field=field, value=phase_id)

    def _load(self, phase_id: str, pending: list[Callable[[], None]]) -> PhaseState:
        """Load a phase, restoring from backup under the restore policy.

        A restore queues STATE_RESTORED on ``pending``; it reaches the trail
        only if the caller goes on to save.
        """
        try:
            return self._store.load(phase_id)
        except CorruptState as exc:
            if self._corruption_policy == CorruptionPolicy.FAIL:
                raise
            logger.warning("%s: corrupted state, restoring from backup", phase_id)
            try:
                state = self._store.restore_from_backup(phase_id)
            except RecoveryError as recovery:
                raise RecoveryError(
                    recovery.message,
                    phase_id,
                    attempted=recovery.attempted,
                    errors=exc.errors,
                ) from exc
            if self._emitter:
                pending.append(partial(self._emitter.state_restored, phase_id, exc.errors))
            return state

    def _flush(self, pending: list[Callable[[], None]]) -> None:
        for emit in pending:
            emit()
        pending.clear()

    @contextmanager
    def _phase_lock(self, phase_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.get(phase_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[phase_id] = lock
        with lock:
            yield

    def _failure(self, command: str, phase_id: str, exc: Exception) -> CommandResult:
        if isinstance(exc, PhaseGateError):
            logger.warning("%s %s failed: %s", command, phase_id, exc.message)
            return CommandResult(
                success=False,
                command=command,
                phase_id=phase_id,
                error=exc.message,
                error_kind=exc.kind,
                context=exc.context,
                suggestions=recovery_suggestions(exc, phase_id),
            )
        logger.exception("%s %s failed unexpectedly", command, phase_id)
        return CommandResult(
            success=False,
            command=command,
            phase_id=phase_id,
            error=str(exc) or type(exc).__name__,
            error_kind=INTERNAL_ERROR,
            context={"exception": type(exc).__name__},
            suggestions=recovery_suggestions(exc, phase_id),
        )


def _blocker_dicts(blockers: Sequence[Blocker]) -> list[dict[str, Any]]:
    return [
        {"type": b.type.value, "description": b.description, "reference": b.reference}
        for b in blockers
    ]
