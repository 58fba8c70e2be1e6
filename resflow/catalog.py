"""Workflow templates and reservation classification.

Everything in this module is deterministic: the same inputs always yield
the same step plan, and nothing here performs I/O.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, List, Mapping, Optional, Tuple

from .config import TemplateConfig
from .constants import (
    APPROVAL_AMOUNT,
    GROUP_ADULTS,
    GROUP_ROOM_COUNT,
    HIGH_AMOUNT,
    LARGE_GROUP_ROOM_COUNT,
    MEDIUM_AMOUNT,
    URGENT_AMOUNT,
)
from .contracts import ReservationSnapshot, StepBlueprint
from .errors import UnknownTemplateError

logger = logging.getLogger(__name__)


def classify_workflow_type(snapshot: ReservationSnapshot) -> str:
    tier = (snapshot.guest_tier or "").lower()
    if tier in ("vip", "svip"):
        return "vip"
    if snapshot.corporate_booking or tier == "corporate":
        return "corporate"
    if snapshot.room_count > GROUP_ROOM_COUNT or snapshot.adults > GROUP_ADULTS:
        return "group"
    return "standard"


def calculate_priority(
    snapshot: ReservationSnapshot, workflow_type: str, today: date
) -> str:
    """Rank a reservation by value, guest tier and days until arrival."""
    amount = snapshot.total_amount or 0
    days_until_arrival: Optional[int] = None
    if snapshot.check_in is not None:
        days_until_arrival = (snapshot.check_in - today).days

    if workflow_type == "vip" or amount > URGENT_AMOUNT:
        return "urgent"
    if (days_until_arrival is not None and days_until_arrival <= 1) or amount > HIGH_AMOUNT:
        return "high"
    if (days_until_arrival is not None and days_until_arrival <= 7) or amount > MEDIUM_AMOUNT:
        return "medium"
    return "low"


def requires_approval(snapshot: ReservationSnapshot) -> bool:
    return (
        (snapshot.total_amount or 0) > APPROVAL_AMOUNT
        or snapshot.room_count > LARGE_GROUP_ROOM_COUNT
        or bool(snapshot.special_requests)
    )


def classify_reservation(snapshot: ReservationSnapshot, today: date) -> Tuple[str, str]:
    """Return ``(workflow_type, priority)`` for ``snapshot``."""
    workflow_type = classify_workflow_type(snapshot)
    return workflow_type, calculate_priority(snapshot, workflow_type, today)


_TemplateBuilder = Callable[[str, ReservationSnapshot], List[StepBlueprint]]


class WorkflowTemplateCatalog:
    """Maps ``(workflow_type, priority, reservation)`` to an ordered step plan."""

    def __init__(self, config: Optional[TemplateConfig] = None) -> None:
        self._config = config or TemplateConfig()
        self._builders: Mapping[str, _TemplateBuilder] = {
            "standard": self._standard,
            "vip": self._vip,
            "corporate": self._corporate,
            "group": self._group,
        }

    @property
    def workflow_types(self) -> List[str]:
        return list(self._builders)

    def resolve_type(self, workflow_type: str) -> str:
        """Return the template name used for ``workflow_type``."""
        if workflow_type in self._builders:
            return workflow_type
        if self._config.fallback_to_standard:
            logger.warning(
                f"No template for workflow type {workflow_type!r}; falling back to standard"
            )
            return "standard"
        raise UnknownTemplateError(workflow_type)

    def build_steps(
        self,
        workflow_type: str,
        priority: str,
        attributes: ReservationSnapshot,
    ) -> List[StepBlueprint]:
        builder = self._builders[self.resolve_type(workflow_type)]
        return builder(priority, attributes)

    # ------------------------------------------------------------------
    # Shared steps
    def _approval_timeout(self, priority: str) -> int:
        if priority == "urgent":
            return self._config.urgent_approval_timeout_minutes
        return self._config.approval_timeout_minutes

    @staticmethod
    def _validate() -> StepBlueprint:
        return StepBlueprint(
            key="validate",
            name="Validate Reservation",
            description="Verify guest details and booking data",
            type="automatic",
            auto_execute=True,
            action="validate_reservation",
        )

    @staticmethod
    def _confirm() -> StepBlueprint:
        return StepBlueprint(
            key="confirm",
            name="Send Confirmation",
            description="Send the booking confirmation to the guest",
            type="automatic",
            auto_execute=True,
            action="send_confirmation",
        )

    # ------------------------------------------------------------------
    # Templates
    def _standard(self, priority: str, attributes: ReservationSnapshot) -> List[StepBlueprint]:
        return [self._validate(), self._confirm()]

    def _vip(self, priority: str, attributes: ReservationSnapshot) -> List[StepBlueprint]:
        return [
            self._validate(),
            StepBlueprint(
                key="vip_welcome_approval",
                name="VIP Welcome Approval",
                description="Front office manager signs off the VIP arrival plan",
                type="approval",
                assigned_to_role="front_office_manager",
                timeout=self._approval_timeout(priority),
            ),
            StepBlueprint(
                key="amenity_setup",
                name="Amenity Setup",
                description="Arrange VIP amenities and in-room services",
                type="manual",
                assigned_to_role="housekeeping",
                timeout=self._config.manual_timeout_minutes,
                skippable=True,
            ),
            StepBlueprint(
                key="room_assignment",
                name="Premium Room Assignment",
                description="Assign the best available room",
                type="manual",
                assigned_to_role="front_office",
                timeout=self._config.manual_timeout_minutes,
                required_fields=("room_number",),
            ),
            self._confirm(),
        ]

    def _corporate(self, priority: str, attributes: ReservationSnapshot) -> List[StepBlueprint]:
        return [
            self._validate(),
            StepBlueprint(
                key="credit_verification",
                name="Credit Verification",
                description="Verify the corporate account and credit terms",
                type="approval",
                assigned_to_role="finance",
                timeout=self._approval_timeout(priority),
            ),
            self._confirm(),
        ]

    def _group(self, priority: str, attributes: ReservationSnapshot) -> List[StepBlueprint]:
        steps = [
            self._validate(),
            StepBlueprint(
                key="room_block_confirmation",
                name="Room Block Confirmation",
                description="Confirm the room block held for the group",
                type="automatic",
                auto_execute=True,
                action="confirm_room_block",
            ),
        ]
        if attributes.room_count > LARGE_GROUP_ROOM_COUNT:
            steps.append(
                StepBlueprint(
                    key="group_rate_approval",
                    name="Group Rate Approval",
                    description="Revenue manager approves the negotiated group rate",
                    type="approval",
                    assigned_to_role="revenue_manager",
                    timeout=self._approval_timeout(priority),
                )
            )
        steps.append(
            StepBlueprint(
                key="rooming_list",
                name="Rooming List",
                description="Collect the rooming list from the group organiser",
                type="manual",
                assigned_to_role="reservations",
                timeout=self._config.rooming_list_timeout_minutes,
                required_fields=("rooming_list",),
                skippable=True,
            )
        )
        steps.append(self._confirm())
        return steps
