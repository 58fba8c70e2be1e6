"""Step transition engine for reservation workflows."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional

from .actions import ActionRegistry
from .constants import DEFAULT_ASSIGNEE_ROLE, SYSTEM_ACTOR
from .contracts import (
    NotificationRequest,
    ReservationSnapshot,
    StepStatus,
    WorkflowInstance,
    WorkflowStep,
    utcnow,
)
from .errors import (
    InvalidStepStateError,
    NotFoundError,
    StepExecutionError,
    StepValidationError,
    WorkflowTerminatedError,
)
from .notifications import BaseNotificationGateway, deliver_all
from .persistence import WorkflowStore

logger = logging.getLogger(__name__)

Mutation = Callable[[WorkflowInstance, datetime], None]


class StepTransitionEngine:
    """Applies step actions to workflow instances held in a store.

    Every transition runs on a copy of the stored instance while holding the
    instance lock, and the copy replaces the stored one only once the whole
    change (step status, workflow status, timestamps and queued
    notifications) has been applied. Notifications are handed to the gateway
    after the commit.
    """

    def __init__(
        self,
        store: WorkflowStore,
        gateway: Optional[BaseNotificationGateway] = None,
        actions: Optional[ActionRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._actions = actions or ActionRegistry.default()
        self._clock = clock or utcnow

    # ------------------------------------------------------------------
    # Creation
    async def create_workflow(
        self,
        snapshot: ReservationSnapshot,
        workflow_type: str,
        priority: str,
        created_by: str = SYSTEM_ACTOR,
    ) -> WorkflowInstance:
        """Instantiate a workflow and run its leading automatic steps."""
        instance = await self._store.create(
            snapshot, workflow_type, priority, created_by=created_by, starter=self._start
        )
        await deliver_all(self._gateway, instance.notifications)
        return instance

    async def _start(self, instance: WorkflowInstance) -> WorkflowInstance:
        if not instance.steps:
            instance.refresh_status()
            return instance
        if instance.steps[0].runs_automatically():
            now = self._now(instance)
            self.advance(instance, now)
            instance.touch(now)
            self._after_transition(instance, "active")
        return instance

    # ------------------------------------------------------------------
    # Step operations
    async def start_step(
        self, workflow_id: str, step_id: str, actor: str = SYSTEM_ACTOR
    ) -> bool:
        """Explicitly start the first pending step of a workflow."""

        def mutate(wf: WorkflowInstance, now: datetime) -> None:
            step = self._require_step(wf, step_id)
            if wf.current_step is not None or wf.next_pending_step() is not step:
                raise InvalidStepStateError(
                    f"Step {step_id} cannot be started while it is {step.status}"
                    " or an earlier step is unfinished",
                    wf.id,
                    step_id,
                )
            if self._enter(wf, step, now):
                self.advance(wf, now)

        await self._transition(workflow_id, mutate)
        logger.info(f"Started step {step_id} of workflow {workflow_id} by {actor}")
        return True

    async def approve_step(
        self,
        workflow_id: str,
        step_id: str,
        notes: Optional[str] = None,
        actor: str = SYSTEM_ACTOR,
    ) -> bool:
        def mutate(wf: WorkflowInstance, now: datetime) -> None:
            step = self._actionable(wf, step_id, "approval")
            self._finish(step, "completed", now, actor, notes)
            self.advance(wf, now)

        await self._transition(workflow_id, mutate)
        logger.info(f"Step {step_id} of workflow {workflow_id} approved by {actor}")
        return True

    async def reject_step(
        self,
        workflow_id: str,
        step_id: str,
        notes: str,
        actor: str = SYSTEM_ACTOR,
    ) -> bool:
        """Reject an approval gate. Rejection is final and fails the workflow."""

        def mutate(wf: WorkflowInstance, now: datetime) -> None:
            step = self._actionable(wf, step_id, "approval")
            self._finish(step, "failed", now, actor, notes)

        await self._transition(workflow_id, mutate)
        logger.info(
            f"Step {step_id} of workflow {workflow_id} rejected by {actor}: {notes}"
        )
        return True

    async def complete_manual_step(
        self,
        workflow_id: str,
        step_id: str,
        payload: Optional[Mapping[str, Any]] = None,
        actor: str = SYSTEM_ACTOR,
    ) -> bool:
        payload = dict(payload or {})

        def mutate(wf: WorkflowInstance, now: datetime) -> None:
            step = self._actionable(wf, step_id, "manual")
            missing = [
                field
                for field in step.required_fields
                if payload.get(field) in (None, "")
            ]
            if missing:
                raise StepValidationError(wf.id, step_id, missing)
            step.data.update(payload)
            self._finish(step, "completed", now, actor, payload.get("notes"))
            self.advance(wf, now)

        await self._transition(workflow_id, mutate)
        logger.info(f"Manual step {step_id} of workflow {workflow_id} completed by {actor}")
        return True

    async def skip_step(
        self,
        workflow_id: str,
        step_id: str,
        notes: Optional[str] = None,
        actor: str = SYSTEM_ACTOR,
    ) -> bool:
        def mutate(wf: WorkflowInstance, now: datetime) -> None:
            step = self._actionable(wf, step_id)
            if not step.skippable:
                raise InvalidStepStateError(
                    f"Step {step_id} cannot be skipped", wf.id, step_id
                )
            self._finish(step, "skipped", now, actor, notes)
            self.advance(wf, now)

        await self._transition(workflow_id, mutate)
        logger.info(f"Step {step_id} of workflow {workflow_id} skipped by {actor}")
        return True

    async def cancel(
        self,
        workflow_id: str,
        reason: Optional[str] = None,
        actor: str = SYSTEM_ACTOR,
    ) -> WorkflowInstance:
        """Cancel a workflow; cancelling a finished workflow changes nothing."""
        async with self._store.lock(workflow_id):
            current = await self._store.get(workflow_id)
            if current.is_terminal:
                logger.debug(
                    f"Cancel ignored for workflow {workflow_id}: already {current.status}"
                )
                return current
            working = current.model_copy(deep=True)
            now = self._now(working)
            working.status = "cancelled"
            working.cancelled_at = now
            working.cancel_reason = reason
            step = working.current_step
            message = f"Workflow {working.id} for reservation {working.reservation_id} was cancelled"
            if reason:
                message += f": {reason}"
            request = working.notify(
                NotificationRequest(
                    type="workflow_cancelled",
                    recipient_role=step.assigned_to_role if step else None,
                    recipient_id=None if step else working.created_by,
                    message=message,
                    workflow_id=working.id,
                    step_id=step.id if step else None,
                    created_at=now,
                )
            )
            working.touch(now)
            await self._store.save(working)

        logger.info(f"Workflow {workflow_id} cancelled by {actor}")
        await deliver_all(self._gateway, [request])
        return working

    # ------------------------------------------------------------------
    # Advancement
    def advance(self, wf: WorkflowInstance, now: datetime) -> None:
        """Move ``wf`` forward after a step finished.

        Starts the next pending step. Automatic steps run immediately and the
        loop continues; manual and approval steps stop it until an operator
        acts. With no steps left the workflow completes.
        """
        while wf.refresh_status() == "active":
            step = wf.next_pending_step()
            if step is None:
                return
            if not self._enter(wf, step, now):
                return

    def _enter(self, wf: WorkflowInstance, step: WorkflowStep, now: datetime) -> bool:
        """Put ``step`` in progress; return True if it already finished."""
        step.status = "in_progress"
        step.started_at = now
        if not step.runs_automatically():
            self._assign(wf, step, now)
            return False
        return self._run_action(wf, step, now)

    def _run_action(self, wf: WorkflowInstance, step: WorkflowStep, now: datetime) -> bool:
        emitted: List[NotificationRequest] = []
        if step.action:
            action = self._actions.resolve(step.action)
            try:
                emitted = list(action(wf, step) or [])
            except StepExecutionError as e:
                logger.warning(f"Step {step.id} of workflow {wf.id} failed: {e}")
                self._finish(step, "failed", now, SYSTEM_ACTOR, str(e))
                return False
        for request in emitted:
            wf.notify(request)
        self._finish(step, "completed", now, SYSTEM_ACTOR, None)
        logger.info(f"Completed automatic step {step.name} for workflow {wf.id}")
        return True

    def _assign(self, wf: WorkflowInstance, step: WorkflowStep, now: datetime) -> None:
        role = step.assigned_to_role or DEFAULT_ASSIGNEE_ROLE
        wf.notify(
            NotificationRequest(
                type="step_assigned",
                recipient_role=role,
                message=(
                    f"{step.name} for {wf.metadata.guest_name or wf.reservation_id} "
                    f"is waiting for {role}"
                ),
                workflow_id=wf.id,
                step_id=step.id,
                created_at=now,
            )
        )
        logger.info(f"Assigned step {step.name} of workflow {wf.id} to {role}")

    @staticmethod
    def _finish(
        step: WorkflowStep,
        status: StepStatus,
        now: datetime,
        actor: str,
        notes: Optional[str],
    ) -> None:
        step.status = status
        step.completed_at = now
        step.completed_by = actor
        step.notes = notes

    # ------------------------------------------------------------------
    # Helpers
    async def _transition(self, workflow_id: str, mutate: Mutation) -> WorkflowInstance:
        async with self._store.lock(workflow_id):
            current = await self._store.get(workflow_id)
            if current.is_terminal:
                raise WorkflowTerminatedError(workflow_id, current.status)
            working = current.model_copy(deep=True)
            seen = len(working.notifications)
            now = self._now(working)
            mutate(working, now)
            working.touch(now)
            self._after_transition(working, current.status)
            await self._store.save(working)

        await deliver_all(self._gateway, working.notifications[seen:])
        return working

    def _after_transition(self, wf: WorkflowInstance, previous_status: str) -> None:
        status = wf.refresh_status()
        if status == previous_status:
            return
        if status == "completed":
            logger.info(f"Completed workflow {wf.id} for reservation {wf.reservation_id}")
        elif status == "failed":
            reason = wf.failure_reason or "step failed"
            logger.info(f"Workflow {wf.id} failed: {reason}")
            failed = next(s for s in wf.steps if s.status == "failed")
            wf.notify(
                NotificationRequest(
                    type="workflow_failed",
                    recipient_id=wf.created_by,
                    message=(
                        f"Workflow {wf.id} for reservation {wf.reservation_id} "
                        f"failed at {failed.name}: {reason}"
                    ),
                    workflow_id=wf.id,
                    step_id=failed.id,
                    created_at=wf.updated_at,
                )
            )

    def _now(self, wf: WorkflowInstance) -> datetime:
        now = self._clock()
        return now if now > wf.updated_at else wf.updated_at

    @staticmethod
    def _require_step(wf: WorkflowInstance, step_id: str) -> WorkflowStep:
        step = wf.find_step(step_id)
        if step is None:
            raise NotFoundError(f"Step {step_id} not found in workflow {wf.id}")
        return step

    def _actionable(
        self, wf: WorkflowInstance, step_id: str, expected_type: Optional[str] = None
    ) -> WorkflowStep:
        step = self._require_step(wf, step_id)
        if step.status != "in_progress":
            raise InvalidStepStateError(
                f"Step {step_id} is {step.status}, not the step in progress",
                wf.id,
                step_id,
            )
        if expected_type and step.type != expected_type:
            raise InvalidStepStateError(
                f"Step {step_id} is a {step.type} step, not {expected_type}",
                wf.id,
                step_id,
            )
        return step

