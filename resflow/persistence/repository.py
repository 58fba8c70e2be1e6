"""Store abstraction for workflow instances."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Protocol

from ..contracts import ReservationSnapshot, WorkflowFilters, WorkflowInstance

WorkflowStarter = Callable[[WorkflowInstance], Awaitable[WorkflowInstance]]


class WorkflowStore(Protocol):
    """Protocol for workflow instance stores."""

    def lock(self, workflow_id: str) -> asyncio.Lock:
        """Return the lock serialising mutations of ``workflow_id``."""

    async def create(
        self,
        snapshot: ReservationSnapshot,
        workflow_type: str,
        priority: str,
        created_by: str = ...,
        starter: Optional[WorkflowStarter] = None,
    ) -> WorkflowInstance:
        """Instantiate a workflow from its template and persist it."""

    async def get(self, workflow_id: str) -> WorkflowInstance:
        """Retrieve an instance by id, raising ``NotFoundError`` if unknown."""

    async def save(self, instance: WorkflowInstance) -> None:
        """Commit a mutated instance."""

    async def remove(self, workflow_id: str) -> None:
        """Move an instance from the active population to history."""

    async def list_active(
        self, filters: Optional[WorkflowFilters] = None
    ) -> list[WorkflowInstance]:
        """Return active instances in priority order."""

    async def list_all(self) -> list[WorkflowInstance]:
        """Return active and historical instances."""

    async def for_reservation(self, reservation_id: str) -> list[WorkflowInstance]:
        """Return every instance created for ``reservation_id``."""
