"""Reservation workflow service tests."""

import asyncio
from datetime import timedelta

import pytest

from resflow.contracts import WorkflowFilters
from resflow.errors import InvalidStepStateError, WorkflowTerminatedError


@pytest.mark.asyncio
async def test_create_classifies_reservation(service, clock, make_reservation):
    corporate = await service.create_workflow(
        make_reservation(corporate_booking=True, check_in=clock.now.date() + timedelta(days=3)),
        created_by="desk",
    )
    vip = await service.create_workflow(
        {"reservation_id": "res-2002", "guest_name": "Grace Hopper", "guest_tier": "VIP"}
    )

    assert (corporate.workflow_type, corporate.priority) == ("corporate", "medium")
    assert corporate.created_by == "desk"
    assert (vip.workflow_type, vip.priority) == ("vip", "urgent")


@pytest.mark.asyncio
async def test_explicit_type_and_priority_win(service, make_reservation):
    wf = await service.create_workflow(
        make_reservation(), workflow_type="corporate", priority="high"
    )

    assert (wf.workflow_type, wf.priority) == ("corporate", "high")


@pytest.mark.asyncio
async def test_repeated_approve_returns_recorded_result(service, gateway, make_reservation):
    wf = await service.create_workflow(make_reservation(), workflow_type="corporate")
    credit = wf.steps[1]

    assert await service.approve_step(wf.id, credit.id, actor="ana.credit")
    assert await service.approve_step(wf.id, credit.id, actor="ana.credit")

    assert (await service.get_workflow(wf.id)).status == "completed"
    assert len(gateway.of_type("confirmation")) == 1


@pytest.mark.asyncio
async def test_concurrent_approvals_apply_once(service, gateway, make_reservation):
    wf = await service.create_workflow(make_reservation(), workflow_type="corporate")
    credit = wf.steps[1]

    results = await asyncio.gather(
        *(service.approve_step(wf.id, credit.id) for _ in range(5))
    )

    assert results == [True] * 5
    assert len(gateway.of_type("confirmation")) == 1


@pytest.mark.asyncio
async def test_conflicting_actions_still_fail(service, make_reservation):
    wf = await service.create_workflow(make_reservation(), workflow_type="corporate")
    credit = wf.steps[1]

    await service.reject_step(wf.id, credit.id, "over limit")
    assert await service.reject_step(wf.id, credit.id, "over limit")

    with pytest.raises(WorkflowTerminatedError):
        await service.approve_step(wf.id, credit.id)


@pytest.mark.asyncio
async def test_failed_attempt_is_not_recorded(service, make_reservation):
    wf = await service.create_workflow(make_reservation(), workflow_type="corporate")
    confirm = wf.steps[2]

    with pytest.raises(InvalidStepStateError):
        await service.skip_step(wf.id, confirm.id)
    with pytest.raises(InvalidStepStateError):
        await service.skip_step(wf.id, confirm.id)


@pytest.mark.asyncio
async def test_assignees_resolved_at_read_time(service, make_reservation):
    wf = await service.create_workflow(make_reservation(), workflow_type="corporate")

    assert await service.assignees(wf.id) == ["ana.credit", "raj.ledger"]

    service.roster._members["finance"] = ["new.controller"]
    assert await service.assignees(wf.id) == ["new.controller"]

    await service.approve_step(wf.id, wf.steps[1].id)
    assert await service.assignees(wf.id) == []


@pytest.mark.asyncio
async def test_listing_filters(service, make_reservation):
    corporate = await service.create_workflow(
        make_reservation(), workflow_type="corporate", priority="medium"
    )
    vip = await service.create_workflow(
        make_reservation(
            reservation_id="res-2002", guest_name="Grace Hopper", booking_number="BK-2002"
        ),
        workflow_type="vip",
        priority="urgent",
    )
    await service.create_workflow(make_reservation(reservation_id="res-3003"))

    active = await service.list_active_workflows()
    assert [wf.id for wf in active] == [vip.id, corporate.id]

    by_role = await service.list_active_workflows(assigned_role="finance")
    assert [wf.id for wf in by_role] == [corporate.id]

    by_search = await service.list_active_workflows(WorkflowFilters(search="bk-2002"))
    assert [wf.id for wf in by_search] == [vip.id]

    assert await service.list_active_workflows(search="hopper", priority="low") == []


@pytest.mark.asyncio
async def test_workflows_for_reservation_include_history(service, make_reservation):
    first = await service.create_workflow(make_reservation(), workflow_type="corporate")
    await service.cancel_workflow(first.id, "rebooked")
    second = await service.create_workflow(make_reservation(), workflow_type="corporate")

    found = await service.workflows_for_reservation("res-1001")

    assert [wf.id for wf in found] == [first.id, second.id]
    assert [wf.status for wf in found] == ["cancelled", "active"]
    assert await service.workflows_for_reservation("res-unknown") == []


@pytest.mark.asyncio
async def test_cancel_twice_returns_same_state(service, gateway, make_reservation):
    wf = await service.create_workflow(make_reservation(), workflow_type="corporate")

    first = await service.cancel_workflow(wf.id, "guest cancelled", actor="desk")
    second = await service.cancel_workflow(wf.id, "guest cancelled", actor="desk")

    assert first.cancelled_at == second.cancelled_at
    assert len(gateway.of_type("workflow_cancelled")) == 1
    stats = await service.get_workflow_stats()
    assert stats.cancelled == 1
    assert stats.active == 0


@pytest.mark.asyncio
async def test_check_timeouts_and_reset(service, clock, gateway, make_reservation):
    wf = await service.create_workflow(make_reservation(), workflow_type="corporate")

    clock.advance(minutes=125)
    escalations = await service.check_timeouts()
    assert [e.recipient_role for e in escalations] == ["finance_director"]
    assert (await service.get_workflow_stats()).overdue == 1

    await service.reset_escalation(wf.id, wf.steps[1].id)
    assert (await service.get_workflow_stats()).overdue == 0


@pytest.mark.asyncio
async def test_start_and_shutdown_manage_monitor(service):
    await service.start()
    task = service._monitor_task
    assert task is not None and not task.done()

    await service.shutdown()
    assert service._monitor_task is None
    assert task.cancelled()


@pytest.mark.asyncio
async def test_async_context_manager(service, make_reservation):
    async with service as running:
        wf = await running.create_workflow(make_reservation())
        assert wf.status == "completed"
        assert running._monitor_task is not None
    assert service._monitor_task is None
