"""In-memory implementation of the workflow store."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from ..catalog import WorkflowTemplateCatalog, requires_approval
from ..constants import SYSTEM_ACTOR
from ..contracts import (
    ReservationSnapshot,
    WorkflowFilters,
    WorkflowInstance,
    WorkflowMetadata,
    WorkflowStep,
)
from ..errors import NotFoundError
from ..scheduling import PriorityScheduler
from .repository import WorkflowStarter, WorkflowStore

logger = logging.getLogger(__name__)


class InMemoryWorkflowStore(WorkflowStore):
    """Keep workflow instances in local memory.

    Active instances and finished ones are held in separate maps; an
    instance moves to history as soon as it is saved with a terminal
    status. Data is not persisted across process restarts.
    """

    def __init__(
        self,
        catalog: Optional[WorkflowTemplateCatalog] = None,
        scheduler: Optional[PriorityScheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._catalog = catalog or WorkflowTemplateCatalog()
        self._scheduler = scheduler or PriorityScheduler()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._active: Dict[str, WorkflowInstance] = {}
        self._history: Dict[str, WorkflowInstance] = {}
        self._by_reservation: Dict[str, List[str]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._index_lock = asyncio.Lock()

    def lock(self, workflow_id: str) -> asyncio.Lock:
        lock = self._locks.get(workflow_id)
        if lock is None:
            lock = self._locks.setdefault(workflow_id, asyncio.Lock())
        return lock

    # ------------------------------------------------------------------
    async def create(
        self,
        snapshot: ReservationSnapshot,
        workflow_type: str,
        priority: str,
        created_by: str = SYSTEM_ACTOR,
        starter: Optional[WorkflowStarter] = None,
    ) -> WorkflowInstance:
        template = self._catalog.resolve_type(workflow_type)
        blueprints = self._catalog.build_steps(template, priority, snapshot)
        now = self._clock()
        instance = WorkflowInstance(
            reservation_id=snapshot.reservation_id,
            workflow_type=template,
            priority=priority,
            steps=[WorkflowStep.from_blueprint(i, bp) for i, bp in enumerate(blueprints)],
            created_at=now,
            updated_at=now,
            created_by=created_by,
            metadata=WorkflowMetadata(
                guest_name=snapshot.guest_name,
                room_type=snapshot.room_type,
                total_amount=snapshot.total_amount,
                booking_number=snapshot.booking_number,
                guest_email=snapshot.guest_email,
                room_count=snapshot.room_count,
                special_requests=list(snapshot.special_requests),
                approval_required=requires_approval(snapshot),
            ),
        )

        async with self.lock(instance.id):
            if starter is not None:
                instance = await starter(instance)
            async with self._index_lock:
                self._by_reservation.setdefault(instance.reservation_id, []).append(
                    instance.id
                )
                self._put(instance)

        logger.info(
            f"Created {instance.workflow_type} workflow {instance.id} "
            f"for reservation {instance.reservation_id} (priority={instance.priority})"
        )
        return instance

    async def get(self, workflow_id: str) -> WorkflowInstance:
        instance = self._active.get(workflow_id) or self._history.get(workflow_id)
        if instance is None:
            raise NotFoundError(f"Workflow {workflow_id} not found")
        return instance

    async def save(self, instance: WorkflowInstance) -> None:
        if instance.id not in self._active and instance.id not in self._history:
            raise NotFoundError(f"Workflow {instance.id} not found")
        async with self._index_lock:
            self._put(instance)

    async def remove(self, workflow_id: str) -> None:
        async with self._index_lock:
            instance = self._active.pop(workflow_id, None)
            if instance is None:
                if workflow_id in self._history:
                    return
                raise NotFoundError(f"Workflow {workflow_id} not found")
            self._history[workflow_id] = instance
        logger.debug(f"Moved workflow {workflow_id} to history ({instance.status})")

    async def list_active(
        self, filters: Optional[WorkflowFilters] = None
    ) -> list[WorkflowInstance]:
        filters = filters or WorkflowFilters()
        matching = [wf for wf in self._active.values() if filters.matches(wf)]
        return self._scheduler.order(matching)

    async def list_history(self) -> list[WorkflowInstance]:
        return list(self._history.values())

    async def list_all(self) -> list[WorkflowInstance]:
        return list(self._active.values()) + list(self._history.values())

    async def for_reservation(self, reservation_id: str) -> list[WorkflowInstance]:
        ids = self._by_reservation.get(reservation_id, [])
        return [await self.get(workflow_id) for workflow_id in ids]

    # ------------------------------------------------------------------
    def _put(self, instance: WorkflowInstance) -> None:
        if instance.is_terminal:
            self._active.pop(instance.id, None)
            self._history[instance.id] = instance
        else:
            self._active[instance.id] = instance
