"""Core records exchanged between resflow components."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

WorkflowType = Literal["standard", "vip", "corporate", "group"]
Priority = Literal["low", "medium", "high", "urgent"]
WorkflowStatus = Literal["active", "completed", "failed", "cancelled"]
StepType = Literal["automatic", "manual", "approval"]
StepStatus = Literal["pending", "in_progress", "completed", "failed", "skipped"]
NotificationType = Literal[
    "step_assigned",
    "step_escalated",
    "confirmation",
    "workflow_cancelled",
    "workflow_failed",
]
DeliveryStatus = Literal["sent", "queued", "failed"]

WORKFLOW_TYPES: Tuple[str, ...] = ("standard", "vip", "corporate", "group")
PRIORITIES: Tuple[str, ...] = ("low", "medium", "high", "urgent")
TERMINAL_STATUSES: Tuple[str, ...] = ("completed", "failed", "cancelled")
DONE_STEP_STATUSES: Tuple[str, ...] = ("completed", "skipped")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReservationSnapshot(BaseModel):
    """Reservation data handed to the engine by the booking system."""

    reservation_id: str
    guest_name: str = ""
    guest_tier: str = "individual"
    room_type: Optional[str] = None
    total_amount: float = 0.0
    booking_number: Optional[str] = None
    guest_email: Optional[str] = None
    room_count: int = 1
    adults: int = 1
    corporate_booking: bool = False
    check_in: Optional[date] = None
    special_requests: List[str] = Field(default_factory=list)


class WorkflowMetadata(BaseModel):
    """Reservation details captured when the workflow was created."""

    guest_name: str = ""
    room_type: Optional[str] = None
    total_amount: float = 0.0
    booking_number: Optional[str] = None
    guest_email: Optional[str] = None
    room_count: int = 1
    special_requests: List[str] = Field(default_factory=list)
    approval_required: bool = False


class StepBlueprint(BaseModel):
    """Template-defined description of one step."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    description: str = ""
    type: StepType
    auto_execute: bool = False
    assigned_to_role: Optional[str] = None
    timeout: Optional[int] = Field(default=None, description="Minutes before escalation")
    action: Optional[str] = None
    required_fields: Tuple[str, ...] = ()
    skippable: bool = False


class WorkflowStep(BaseModel):
    """A step of a running workflow instance."""

    id: str
    key: str
    name: str
    description: str = ""
    type: StepType
    status: StepStatus = "pending"
    assigned_to_role: Optional[str] = None
    auto_execute: bool = False
    timeout: Optional[int] = None
    action: Optional[str] = None
    required_fields: List[str] = Field(default_factory=list)
    skippable: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    notes: Optional[str] = None
    escalated_at: Optional[datetime] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_blueprint(cls, index: int, blueprint: StepBlueprint) -> "WorkflowStep":
        return cls(
            id=f"step-{index + 1}-{blueprint.key.replace('_', '-')}",
            key=blueprint.key,
            name=blueprint.name,
            description=blueprint.description,
            type=blueprint.type,
            assigned_to_role=blueprint.assigned_to_role,
            auto_execute=blueprint.auto_execute,
            timeout=blueprint.timeout,
            action=blueprint.action,
            required_fields=list(blueprint.required_fields),
            skippable=blueprint.skippable,
        )

    @property
    def is_done(self) -> bool:
        return self.status in DONE_STEP_STATUSES

    @property
    def is_overdue(self) -> bool:
        return self.escalated_at is not None and self.status == "in_progress"

    def runs_automatically(self) -> bool:
        """Approval gates always wait for a human, whatever the blueprint says."""
        return self.type != "approval" and (self.type == "automatic" or self.auto_execute)


class NotificationRequest(BaseModel):
    """Structured request handed to the notification gateway."""

    type: NotificationType
    message: str
    workflow_id: str
    step_id: Optional[str] = None
    recipient_role: Optional[str] = None
    recipient_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class WorkflowInstance(BaseModel):
    """One reservation's run through its step sequence."""

    id: str = Field(default_factory=lambda: f"wf-{uuid.uuid4().hex}", frozen=True)
    reservation_id: str = Field(frozen=True)
    workflow_type: WorkflowType = Field(frozen=True)
    priority: Priority = Field(frozen=True)
    status: WorkflowStatus = "active"
    steps: List[WorkflowStep] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow, frozen=True)
    updated_at: datetime = Field(default_factory=utcnow)
    created_by: str = Field(default="system", frozen=True)
    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)
    notifications: List[NotificationRequest] = Field(default_factory=list)
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None

    @property
    def current_step(self) -> Optional[WorkflowStep]:
        """The step currently in progress, if any."""
        return next((s for s in self.steps if s.status == "in_progress"), None)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def failure_reason(self) -> Optional[str]:
        failed = next((s for s in self.steps if s.status == "failed"), None)
        return failed.notes if failed else None

    @property
    def completed_at(self) -> Optional[datetime]:
        """Completion time of the last step, for completed workflows."""
        if self.status != "completed" or not self.steps:
            return None
        return self.steps[-1].completed_at

    def find_step(self, step_id: str) -> Optional[WorkflowStep]:
        return next((s for s in self.steps if s.id == step_id), None)

    def next_pending_step(self) -> Optional[WorkflowStep]:
        """Return the first pending step whose predecessors are all done."""
        for step in self.steps:
            if step.is_done:
                continue
            return step if step.status == "pending" else None
        return None

    def derive_status(self) -> WorkflowStatus:
        if self.status == "cancelled":
            return "cancelled"
        if any(s.status == "failed" for s in self.steps):
            return "failed"
        if all(s.is_done for s in self.steps):
            return "completed"
        return "active"

    def refresh_status(self) -> WorkflowStatus:
        self.status = self.derive_status()
        return self.status

    def touch(self, now: datetime) -> None:
        """Advance ``updated_at``; it never moves backwards."""
        if now > self.updated_at:
            self.updated_at = now

    def notify(self, request: NotificationRequest) -> NotificationRequest:
        self.notifications.append(request)
        logger.debug(
            f"Queued {request.type} notification for workflow_id={self.id} "
            f"step_id={request.step_id}"
        )
        return request


class WorkflowFilters(BaseModel):
    """Operator-facing filters for the active workflow listing."""

    status: Optional[WorkflowStatus] = None
    priority: Optional[Priority] = None
    workflow_type: Optional[WorkflowType] = None
    assigned_role: Optional[str] = None
    search: Optional[str] = None

    def matches(self, instance: WorkflowInstance) -> bool:
        if self.status and instance.status != self.status:
            return False
        if self.priority and instance.priority != self.priority:
            return False
        if self.workflow_type and instance.workflow_type != self.workflow_type:
            return False
        if self.assigned_role:
            step = instance.current_step
            if step is None or step.assigned_to_role != self.assigned_role:
                return False
        if self.search:
            term = self.search.lower()
            haystack = (
                instance.metadata.guest_name,
                instance.metadata.booking_number or "",
                instance.id,
            )
            if not any(term in value.lower() for value in haystack):
                return False
        return True


class WorkflowStats(BaseModel):
    """Aggregate counts over the workflow population."""

    total: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0
    overdue: int = 0
    by_priority: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    avg_completion_minutes: float = 0.0
