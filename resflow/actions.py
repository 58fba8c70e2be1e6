"""Side effects executed by automatic steps."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from .contracts import NotificationRequest, WorkflowInstance, WorkflowStep
from .errors import StepExecutionError

logger = logging.getLogger(__name__)

StepAction = Callable[[WorkflowInstance, WorkflowStep], Optional[Iterable[NotificationRequest]]]


def validate_reservation(
    instance: WorkflowInstance, step: WorkflowStep
) -> Optional[List[NotificationRequest]]:
    """Check the captured reservation data is complete enough to proceed."""
    if not instance.reservation_id:
        raise StepExecutionError("Reservation id missing")
    if not instance.metadata.guest_name.strip():
        raise StepExecutionError("Guest information incomplete")
    if instance.metadata.total_amount < 0:
        raise StepExecutionError("Total amount cannot be negative")
    return None


def confirm_room_block(
    instance: WorkflowInstance, step: WorkflowStep
) -> Optional[List[NotificationRequest]]:
    if instance.metadata.room_count < 1:
        raise StepExecutionError("Room block must hold at least one room")
    step.data["rooms_blocked"] = instance.metadata.room_count
    return None


def confirmation_message(instance: WorkflowInstance) -> str:
    meta = instance.metadata
    lines = [
        f"Dear {meta.guest_name or 'Guest'},",
        "",
        f"Your {instance.workflow_type} reservation has been confirmed!",
        "",
        f"- Room: {meta.room_type or 'Room'}",
    ]
    if meta.booking_number:
        lines.append(f"- Confirmation: {meta.booking_number}")
    lines.extend(["", "Thank you for choosing our hotel!"])
    return "\n".join(lines)


def send_confirmation(
    instance: WorkflowInstance, step: WorkflowStep
) -> List[NotificationRequest]:
    recipient = instance.metadata.guest_email or instance.metadata.booking_number
    if not recipient:
        raise StepExecutionError("No guest contact to send the confirmation to")
    return [
        NotificationRequest(
            type="confirmation",
            recipient_id=recipient,
            message=confirmation_message(instance),
            workflow_id=instance.id,
            step_id=step.id,
        )
    ]


class ActionRegistry:
    """Name to callable lookup for automatic step actions."""

    def __init__(self, actions: Optional[Dict[str, StepAction]] = None) -> None:
        self._actions: Dict[str, StepAction] = dict(actions or {})

    @classmethod
    def default(cls) -> "ActionRegistry":
        return cls(
            {
                "validate_reservation": validate_reservation,
                "confirm_room_block": confirm_room_block,
                "send_confirmation": send_confirmation,
            }
        )

    def register(self, name: str, action: StepAction) -> None:
        """Add or replace an action."""
        self._actions[name] = action

    def resolve(self, name: str) -> StepAction:
        try:
            return self._actions[name]
        except KeyError:
            raise KeyError(f"No step action registered under {name!r}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._actions
