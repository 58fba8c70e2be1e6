"""Operator-facing entry point wiring the engine components together."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .actions import ActionRegistry
from .catalog import WorkflowTemplateCatalog, calculate_priority, classify_workflow_type
from .config import ResflowConfig, load_config
from .constants import SYSTEM_ACTOR
from .contracts import (
    NotificationRequest,
    ReservationSnapshot,
    WorkflowFilters,
    WorkflowInstance,
    WorkflowStats,
    utcnow,
)
from .engine import StepTransitionEngine
from .monitor import TimeoutMonitor
from .notifications import BaseNotificationGateway, get_gateway
from .persistence import InMemoryWorkflowStore, WorkflowStore
from .roster import RoleRoster, StaticRoleRoster
from .stats import StatsAggregator

logger = logging.getLogger(__name__)

TransitionKey = Tuple[str, str, str]


class ReservationWorkflowService:
    """Owns one store, engine and monitor for the lifetime of a host process.

    Construct it, call :meth:`start` to connect the notification gateway and
    launch the periodic timeout sweep, and :meth:`shutdown` to stop both. It
    can also be used as an async context manager.

    Step transitions are recorded in a ledger keyed by
    ``(workflow_id, step_id, intended_status)`` so that a retried request
    returns the first result instead of failing on the already-moved step.
    """

    def __init__(
        self,
        config: Optional[ResflowConfig] = None,
        store: Optional[WorkflowStore] = None,
        gateway: Optional[BaseNotificationGateway] = None,
        roster: Optional[RoleRoster] = None,
        actions: Optional[ActionRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config or load_config()
        self._clock = clock or utcnow
        self.catalog = WorkflowTemplateCatalog(self.config.templates)
        self.store = store or InMemoryWorkflowStore(self.catalog, clock=self._clock)
        self.gateway = gateway or get_gateway(config=self.config)
        self.roster = roster or StaticRoleRoster(self.config.roles)
        self.engine = StepTransitionEngine(self.store, self.gateway, actions, self._clock)
        self.monitor = TimeoutMonitor(
            self.store, self.gateway, self.config.monitor, self._clock
        )
        self.stats = StatsAggregator()
        self._ledger: Dict[TransitionKey, bool] = {}
        self._key_locks: Dict[TransitionKey, asyncio.Lock] = {}
        self._monitor_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifetime
    async def start(self, run_monitor: bool = True) -> None:
        await self.gateway.connect()
        if run_monitor and self._monitor_task is None:
            self._monitor_task = asyncio.create_task(self.monitor.run())
        logger.info("Reservation workflow service started")

    async def shutdown(self) -> None:
        if self._monitor_task is not None:
            self._monitor_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._monitor_task
            self._monitor_task = None
        await self.gateway.disconnect()
        logger.info("Reservation workflow service stopped")

    async def __aenter__(self) -> "ReservationWorkflowService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    # ------------------------------------------------------------------
    # Workflows
    async def create_workflow(
        self,
        reservation: Union[ReservationSnapshot, Mapping[str, Any]],
        created_by: str = SYSTEM_ACTOR,
        workflow_type: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> WorkflowInstance:
        """Classify ``reservation`` and start its workflow."""
        snapshot = (
            reservation
            if isinstance(reservation, ReservationSnapshot)
            else ReservationSnapshot.model_validate(reservation)
        )
        workflow_type = workflow_type or classify_workflow_type(snapshot)
        priority = priority or calculate_priority(
            snapshot, workflow_type, self._clock().date()
        )
        return await self.engine.create_workflow(
            snapshot, workflow_type, priority, created_by=created_by
        )

    async def get_workflow(self, workflow_id: str) -> WorkflowInstance:
        return await self.store.get(workflow_id)

    async def workflows_for_reservation(self, reservation_id: str) -> List[WorkflowInstance]:
        return await self.store.for_reservation(reservation_id)

    async def list_active_workflows(
        self, filters: Optional[WorkflowFilters] = None, **criteria: Any
    ) -> List[WorkflowInstance]:
        """Active workflows matching ``filters``, highest priority first."""
        if filters is None:
            filters = WorkflowFilters(**criteria)
        return await self.store.list_active(filters)

    async def get_workflow_stats(self) -> WorkflowStats:
        return self.stats.compute_stats(await self.store.list_all())

    async def assignees(self, workflow_id: str) -> List[str]:
        """Staff who may act on the workflow's current step, resolved now."""
        instance = await self.store.get(workflow_id)
        step = instance.current_step
        if step is None or not step.assigned_to_role:
            return []
        return self.roster.resolve_role(step.assigned_to_role)

    async def cancel_workflow(
        self, workflow_id: str, reason: Optional[str] = None, actor: str = SYSTEM_ACTOR
    ) -> WorkflowInstance:
        return await self.engine.cancel(workflow_id, reason=reason, actor=actor)

    # ------------------------------------------------------------------
    # Steps
    async def start_step(
        self, workflow_id: str, step_id: str, actor: str = SYSTEM_ACTOR
    ) -> bool:
        return await self._once(
            (workflow_id, step_id, "in_progress"),
            lambda: self.engine.start_step(workflow_id, step_id, actor=actor),
        )

    async def approve_step(
        self,
        workflow_id: str,
        step_id: str,
        notes: Optional[str] = None,
        actor: str = SYSTEM_ACTOR,
    ) -> bool:
        return await self._once(
            (workflow_id, step_id, "completed"),
            lambda: self.engine.approve_step(workflow_id, step_id, notes, actor=actor),
        )

    async def reject_step(
        self, workflow_id: str, step_id: str, notes: str, actor: str = SYSTEM_ACTOR
    ) -> bool:
        return await self._once(
            (workflow_id, step_id, "failed"),
            lambda: self.engine.reject_step(workflow_id, step_id, notes, actor=actor),
        )

    async def complete_manual_step(
        self,
        workflow_id: str,
        step_id: str,
        payload: Optional[Mapping[str, Any]] = None,
        actor: str = SYSTEM_ACTOR,
    ) -> bool:
        return await self._once(
            (workflow_id, step_id, "completed"),
            lambda: self.engine.complete_manual_step(
                workflow_id, step_id, payload, actor=actor
            ),
        )

    async def skip_step(
        self,
        workflow_id: str,
        step_id: str,
        notes: Optional[str] = None,
        actor: str = SYSTEM_ACTOR,
    ) -> bool:
        return await self._once(
            (workflow_id, step_id, "skipped"),
            lambda: self.engine.skip_step(workflow_id, step_id, notes, actor=actor),
        )

    # ------------------------------------------------------------------
    # Timeouts
    async def check_timeouts(
        self, now: Optional[datetime] = None
    ) -> List[NotificationRequest]:
        return await self.monitor.tick(now)

    async def reset_escalation(self, workflow_id: str, step_id: str) -> None:
        await self.monitor.reset_escalation(workflow_id, step_id)

    # ------------------------------------------------------------------
    async def _once(
        self, key: TransitionKey, operation: Callable[[], Awaitable[bool]]
    ) -> bool:
        async with self._key_locks.setdefault(key, asyncio.Lock()):
            if key in self._ledger:
                logger.debug(f"Transition {key} already applied; returning recorded result")
                return self._ledger[key]
            result = await operation()
            self._ledger[key] = result
            return result
