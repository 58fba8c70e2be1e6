"""Timeout monitor tests."""

import pytest

from resflow.config import MonitorConfig
from resflow.errors import InvalidStepStateError, WorkflowTerminatedError
from resflow.monitor import TimeoutMonitor


@pytest.fixture
def monitor(store, gateway, clock):
    return TimeoutMonitor(store, gateway, MonitorConfig(), clock)


@pytest.mark.asyncio
async def test_overdue_step_is_escalated_once(engine, monitor, store, gateway, clock, make_reservation):
    wf = await engine.create_workflow(make_reservation(), "corporate", "medium")
    credit = wf.steps[1]

    clock.advance(minutes=120)
    assert await monitor.tick() == []

    clock.advance(minutes=1)
    escalations = await monitor.tick()
    assert len(escalations) == 1
    assert escalations[0].type == "step_escalated"
    assert escalations[0].recipient_role == "finance_director"
    assert escalations[0].step_id == credit.id

    clock.advance(minutes=30)
    assert await monitor.tick() == []
    assert len(gateway.of_type("step_escalated")) == 1

    stored = await store.get(wf.id)
    assert stored.steps[1].status == "in_progress"
    assert stored.steps[1].is_overdue
    assert stored.status == "active"


@pytest.mark.asyncio
async def test_overdue_step_remains_actionable(engine, monitor, store, clock, make_reservation):
    wf = await engine.create_workflow(make_reservation(), "corporate", "medium")
    clock.advance(minutes=200)
    await monitor.tick()

    await engine.approve_step(wf.id, wf.steps[1].id)

    assert (await store.get(wf.id)).status == "completed"
    assert await monitor.tick() == []


@pytest.mark.asyncio
async def test_reset_allows_another_escalation(engine, monitor, gateway, clock, make_reservation):
    wf = await engine.create_workflow(make_reservation(), "corporate", "medium")
    clock.advance(minutes=121)
    await monitor.tick()

    await monitor.reset_escalation(wf.id, wf.steps[1].id)
    clock.advance(minutes=1)
    await monitor.tick()

    assert len(gateway.of_type("step_escalated")) == 2


@pytest.mark.asyncio
async def test_reset_rejects_non_current_step(engine, monitor, make_reservation):
    wf = await engine.create_workflow(make_reservation(), "corporate", "medium")

    with pytest.raises(InvalidStepStateError):
        await monitor.reset_escalation(wf.id, wf.steps[2].id)

    await engine.cancel(wf.id)
    with pytest.raises(WorkflowTerminatedError):
        await monitor.reset_escalation(wf.id, wf.steps[1].id)


@pytest.mark.asyncio
async def test_unknown_role_uses_default_contact(store, gateway, clock):
    monitor = TimeoutMonitor(
        store, gateway, MonitorConfig(default_escalation_role="night_manager"), clock
    )

    assert monitor.escalation_contact("finance") == "finance_director"
    assert monitor.escalation_contact("concierge") == "night_manager"
    assert monitor.escalation_contact(None) == "night_manager"


@pytest.mark.asyncio
async def test_run_sweeps_until_lifespan(engine, monitor, gateway, clock, make_reservation):
    await engine.create_workflow(make_reservation(), "corporate", "medium")
    clock.advance(hours=3)

    await monitor.run(interval=0.01, lifespan=0.05)

    assert len(gateway.of_type("step_escalated")) == 1
