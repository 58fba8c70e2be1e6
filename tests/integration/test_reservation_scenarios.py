"""End-to-end reservation workflows driven through the service."""

import pytest

from resflow.errors import InvalidStepStateError


@pytest.mark.asyncio
async def test_standard_reservation_confirms_immediately(service, gateway, make_reservation):
    wf = await service.create_workflow(make_reservation(), workflow_type="standard")

    assert wf.status == "completed"
    assert [s.status for s in wf.steps] == ["completed", "completed"]
    assert len(gateway.of_type("confirmation")) == 1
    assert await service.list_active_workflows() == []


@pytest.mark.asyncio
async def test_corporate_reservation_after_credit_approval(service, clock, make_reservation):
    wf = await service.create_workflow(make_reservation(corporate_booking=True))
    credit = wf.steps[1]

    assert wf.status == "active"
    assert credit.status == "in_progress"
    assert credit.timeout == 120

    clock.advance(minutes=45)
    await service.approve_step(wf.id, credit.id, "account in good standing", actor="ana.credit")

    wf = await service.get_workflow(wf.id)
    assert wf.status == "completed"
    assert wf.steps[2].status == "completed"
    stats = await service.get_workflow_stats()
    assert stats.completed == 1
    assert stats.avg_completion_minutes == 45


@pytest.mark.asyncio
async def test_corporate_reservation_rejected(service, gateway, make_reservation):
    wf = await service.create_workflow(make_reservation(corporate_booking=True))

    await service.reject_step(wf.id, wf.steps[1].id, "insufficient credit", actor="ana.credit")

    wf = await service.get_workflow(wf.id)
    assert wf.status == "failed"
    assert wf.steps[1].status == "failed"
    assert wf.steps[2].status == "pending"
    assert wf.steps[2].started_at is None
    assert gateway.of_type("confirmation") == []


@pytest.mark.asyncio
async def test_unanswered_credit_check_escalates_once(service, clock, gateway, make_reservation):
    wf = await service.create_workflow(make_reservation(corporate_booking=True))

    clock.advance(minutes=121)
    first = await service.check_timeouts()
    clock.advance(minutes=60)
    second = await service.check_timeouts()

    assert len(first) == 1
    assert second == []
    assert len(gateway.of_type("step_escalated")) == 1
    wf = await service.get_workflow(wf.id)
    assert wf.steps[1].status == "in_progress"
    assert wf.steps[1].is_overdue


@pytest.mark.asyncio
async def test_approving_pending_step_is_rejected(service, make_reservation):
    wf = await service.create_workflow(make_reservation(corporate_booking=True))
    before = (await service.get_workflow(wf.id)).model_dump()

    with pytest.raises(InvalidStepStateError):
        await service.approve_step(wf.id, wf.steps[2].id)

    assert (await service.get_workflow(wf.id)).model_dump() == before


@pytest.mark.asyncio
async def test_urgent_reservations_listed_first(service, clock, make_reservation):
    older_urgent = await service.create_workflow(
        make_reservation(reservation_id="res-1"), workflow_type="corporate", priority="urgent"
    )
    clock.advance(minutes=5)
    high = await service.create_workflow(
        make_reservation(reservation_id="res-2"), workflow_type="corporate", priority="high"
    )
    clock.advance(minutes=5)
    newer_urgent = await service.create_workflow(
        make_reservation(reservation_id="res-3"), workflow_type="corporate", priority="urgent"
    )

    active = await service.list_active_workflows()

    assert [wf.id for wf in active] == [newer_urgent.id, older_urgent.id, high.id]


@pytest.mark.asyncio
async def test_group_booking_walkthrough(service, gateway, make_reservation):
    wf = await service.create_workflow(
        make_reservation(guest_name="Chess Club", room_count=12, adults=24)
    )
    assert wf.workflow_type == "group"
    assert wf.metadata.approval_required
    assert wf.steps[1].data == {"rooms_blocked": 12}

    rate = wf.current_step
    assert rate.key == "group_rate_approval"
    await service.approve_step(wf.id, rate.id, actor="rev")

    rooming = (await service.get_workflow(wf.id)).current_step
    assert rooming.key == "rooming_list"
    await service.complete_manual_step(
        wf.id, rooming.id, {"rooming_list": "rooming.csv", "notes": "received by email"}
    )

    wf = await service.get_workflow(wf.id)
    assert wf.status == "completed"
    assert wf.steps[3].notes == "received by email"
    assert [n.recipient_role for n in gateway.of_type("step_assigned")] == [
        "revenue_manager",
        "reservations",
    ]
