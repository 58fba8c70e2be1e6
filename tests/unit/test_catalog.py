"""Template catalog and classification tests."""

from datetime import date, timedelta

import pytest

from resflow.catalog import WorkflowTemplateCatalog, classify_reservation, requires_approval
from resflow.config import TemplateConfig
from resflow.contracts import ReservationSnapshot
from resflow.errors import UnknownTemplateError

TODAY = date(2026, 3, 2)


def snapshot(**kwargs):
    return ReservationSnapshot(reservation_id="res-1", guest_name="Guest", **kwargs)


def test_standard_template_is_automatic_only():
    steps = WorkflowTemplateCatalog().build_steps("standard", "low", snapshot())

    assert [s.key for s in steps] == ["validate", "confirm"]
    assert all(s.type == "automatic" and s.auto_execute for s in steps)
    assert all(s.timeout is None for s in steps)


def test_corporate_template_inserts_credit_verification():
    steps = WorkflowTemplateCatalog().build_steps("corporate", "medium", snapshot())

    assert [s.key for s in steps] == ["validate", "credit_verification", "confirm"]
    credit = steps[1]
    assert credit.type == "approval"
    assert credit.assigned_to_role == "finance"
    assert credit.timeout == 120


def test_urgent_priority_shortens_approval_timeouts():
    steps = WorkflowTemplateCatalog().build_steps("corporate", "urgent", snapshot())

    assert steps[1].timeout == 60


def test_vip_template_requires_front_office_manager_approval():
    steps = WorkflowTemplateCatalog().build_steps("vip", "urgent", snapshot(guest_tier="vip"))

    assert steps[1].key == "vip_welcome_approval"
    assert steps[1].assigned_to_role == "front_office_manager"
    room = next(s for s in steps if s.key == "room_assignment")
    assert room.type == "manual"
    assert room.required_fields == ("room_number",)


@pytest.mark.parametrize("rooms, has_rate_approval", [(4, False), (12, True)])
def test_group_template_depends_on_block_size(rooms, has_rate_approval):
    steps = WorkflowTemplateCatalog().build_steps("group", "medium", snapshot(room_count=rooms))
    keys = [s.key for s in steps]

    assert keys[:2] == ["validate", "room_block_confirmation"]
    assert steps[1].type == "automatic"
    assert ("group_rate_approval" in keys) is has_rate_approval
    assert keys[-2:] == ["rooming_list", "confirm"]


def test_build_steps_is_deterministic():
    catalog = WorkflowTemplateCatalog()
    attrs = snapshot(room_count=12)

    assert catalog.build_steps("group", "high", attrs) == catalog.build_steps("group", "high", attrs)


def test_unknown_type_raises_by_default():
    with pytest.raises(UnknownTemplateError) as excinfo:
        WorkflowTemplateCatalog().build_steps("custom", "low", snapshot())
    assert excinfo.value.workflow_type == "custom"


def test_unknown_type_falls_back_when_configured():
    catalog = WorkflowTemplateCatalog(TemplateConfig(fallback_to_standard=True))

    assert catalog.resolve_type("custom") == "standard"
    assert [s.key for s in catalog.build_steps("custom", "low", snapshot())] == [
        "validate",
        "confirm",
    ]


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        ({"guest_tier": "svip"}, ("vip", "urgent")),
        ({"corporate_booking": True}, ("corporate", "low")),
        ({"guest_tier": "corporate", "total_amount": 60000}, ("corporate", "high")),
        ({"room_count": 5}, ("group", "low")),
        ({"adults": 8, "check_in": TODAY + timedelta(days=5)}, ("group", "medium")),
        ({"check_in": TODAY + timedelta(days=1)}, ("standard", "high")),
        ({"total_amount": 150000}, ("standard", "urgent")),
        ({"total_amount": 25000, "check_in": TODAY + timedelta(days=30)}, ("standard", "medium")),
        ({"check_in": TODAY + timedelta(days=30)}, ("standard", "low")),
    ],
)
def test_classify_reservation(kwargs, expected):
    assert classify_reservation(snapshot(**kwargs), TODAY) == expected


def test_requires_approval():
    assert not requires_approval(snapshot())
    assert requires_approval(snapshot(total_amount=80000))
    assert requires_approval(snapshot(room_count=11))
    assert requires_approval(snapshot(special_requests=["late check-in"]))
