"""Timeout detection and escalation for in-progress steps."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .config import MonitorConfig
from .contracts import NotificationRequest, WorkflowStep, utcnow
from .errors import InvalidStepStateError, NotFoundError, WorkflowTerminatedError
from .notifications import BaseNotificationGateway, deliver_all
from .persistence import WorkflowStore

logger = logging.getLogger(__name__)


class TimeoutMonitor:
    """Flags overdue manual and approval steps.

    Escalation is advisory: an overdue step keeps its status and stays
    actionable; the monitor only records ``escalated_at`` and sends one
    ``step_escalated`` notification to the escalation contact of the step's
    role. A flagged step is not escalated again until
    :meth:`reset_escalation` clears the flag.
    """

    def __init__(
        self,
        store: WorkflowStore,
        gateway: Optional[BaseNotificationGateway] = None,
        config: Optional[MonitorConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._config = config or MonitorConfig()
        self._clock = clock or utcnow

    def escalation_contact(self, role: Optional[str]) -> str:
        if role and role in self._config.escalation_contacts:
            return self._config.escalation_contacts[role]
        return self._config.default_escalation_role

    @staticmethod
    def is_overdue(step: Optional[WorkflowStep], now: datetime) -> bool:
        if step is None or step.status != "in_progress" or step.type == "automatic":
            return False
        if not step.timeout or step.started_at is None:
            return False
        return now - step.started_at > timedelta(minutes=step.timeout)

    async def tick(self, now: Optional[datetime] = None) -> List[NotificationRequest]:
        """Run one sweep over the active workflows."""
        now = now or self._clock()
        escalations = []
        for instance in await self._store.list_active():
            request = await self._check(instance.id, now)
            if request is not None:
                escalations.append(request)
        await deliver_all(self._gateway, escalations)
        return escalations

    async def _check(
        self, workflow_id: str, now: datetime
    ) -> Optional[NotificationRequest]:
        async with self._store.lock(workflow_id):
            current = await self._store.get(workflow_id)
            if current.is_terminal:
                return None
            step = current.current_step
            if not self.is_overdue(step, now) or step.escalated_at is not None:
                return None

            working = current.model_copy(deep=True)
            flagged = working.find_step(step.id)
            stamp = max(now, working.updated_at)
            flagged.escalated_at = stamp
            contact = self.escalation_contact(flagged.assigned_to_role)
            waited = int((now - flagged.started_at).total_seconds() // 60)
            request = working.notify(
                NotificationRequest(
                    type="step_escalated",
                    recipient_role=contact,
                    message=(
                        f"{flagged.name} for reservation {working.reservation_id} has "
                        f"waited {waited} minutes (timeout {flagged.timeout}); "
                        f"assigned to {flagged.assigned_to_role or 'unassigned'}"
                    ),
                    workflow_id=working.id,
                    step_id=flagged.id,
                    created_at=stamp,
                )
            )
            working.touch(stamp)
            await self._store.save(working)

        logger.warning(
            f"Step {flagged.id} of workflow {workflow_id} overdue; escalated to {contact}"
        )
        return request

    async def reset_escalation(self, workflow_id: str, step_id: str) -> None:
        """Clear the overdue flag so the step may be escalated again."""
        async with self._store.lock(workflow_id):
            current = await self._store.get(workflow_id)
            if current.is_terminal:
                raise WorkflowTerminatedError(workflow_id, current.status)
            step = current.find_step(step_id)
            if step is None:
                raise NotFoundError(f"Step {step_id} not found in workflow {workflow_id}")
            if step.status != "in_progress":
                raise InvalidStepStateError(
                    f"Step {step_id} is {step.status}, not the step in progress",
                    workflow_id,
                    step_id,
                )
            if step.escalated_at is None:
                return
            working = current.model_copy(deep=True)
            working.find_step(step_id).escalated_at = None
            working.touch(self._clock())
            await self._store.save(working)
        logger.info(f"Escalation reset for step {step_id} of workflow {workflow_id}")

    async def run(
        self, interval: Optional[float] = None, lifespan: Optional[float] = None
    ) -> None:
        """Sweep periodically until cancelled or ``lifespan`` seconds elapse.

        Args:
            interval: Seconds between sweeps; defaults to the configured value.
            lifespan: Maximum time in seconds to keep running. If None, runs
                until the task is cancelled.
        """
        interval = interval if interval is not None else self._config.interval_seconds
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time is not None:
                if loop.time() - start_time >= lifespan:
                    break
            try:
                await self.tick()
            except Exception:
                logger.exception("Timeout sweep failed")
            await asyncio.sleep(interval)
