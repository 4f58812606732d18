from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from laundry_system import LaundryDatabase, LaundryService
from laundry_system.config import DEFAULT_PRICING

NOW = datetime(2026, 3, 14, 10, 30, 0)

CONSUMABLES = ("Detergent", "Bleach", "Fabric Softener", "Starch")


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def database():
    db = LaundryDatabase(":memory:")
    yield db
    db.close()


@pytest.fixture
def service(database, clock):
    laundry = LaundryService(database, clock=clock)
    laundry.pricing.ensure_defaults(DEFAULT_PRICING)
    return laundry


@pytest.fixture
def stocked_service(service):
    for item_name in CONSUMABLES:
        service.inventory.create(item_name, 10.0, 2.0, unit="kg")
    return service


@pytest.fixture
def customer(service):
    return service.customers.create("Maria Santos", "+63 917 555 0101")
