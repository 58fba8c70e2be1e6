"""Shared fixtures for the resflow test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from resflow.catalog import WorkflowTemplateCatalog
from resflow.config import ResflowConfig
from resflow.contracts import ReservationSnapshot
from resflow.engine import StepTransitionEngine
from resflow.notifications import InMemoryNotificationGateway
from resflow.persistence import InMemoryWorkflowStore
from resflow.roster import StaticRoleRoster
from resflow.service import ReservationWorkflowService

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class MutableClock:
    """Callable clock that tests move by hand."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_snapshot(**overrides) -> ReservationSnapshot:
    data = {
        "reservation_id": "res-1001",
        "guest_name": "Ada Lovelace",
        "guest_email": "ada@example.com",
        "room_type": "Deluxe King",
        "total_amount": 1200.0,
        "booking_number": "BK-1001",
    }
    data.update(overrides)
    return ReservationSnapshot(**data)


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def gateway():
    return InMemoryNotificationGateway()


@pytest.fixture
def store(clock):
    return InMemoryWorkflowStore(WorkflowTemplateCatalog(), clock=clock)


@pytest.fixture
def engine(store, gateway, clock):
    return StepTransitionEngine(store, gateway, clock=clock)


@pytest.fixture
def service(clock, gateway):
    return ReservationWorkflowService(
        config=ResflowConfig(),
        gateway=gateway,
        roster=StaticRoleRoster(
            {"finance": ["ana.credit", "raj.ledger"], "front_office_manager": ["mo"]}
        ),
        clock=clock,
    )


@pytest.fixture
def make_reservation():
    return make_snapshot
