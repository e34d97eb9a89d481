# tests/conftest.py
from __future__ import annotations

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from revenue_analytics.analytics.accumulator import RevenueAccumulator
from revenue_analytics.analytics.errors import UpstreamError
from revenue_analytics.config import Settings
from revenue_analytics.main import create_app


class FakeClock:
    """Settable stand-in for utc_now()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakePayments:
    """Duck-typed StripePaymentProcessor that records its calls."""

    def __init__(self, charges=None, subscriptions=None, error: str | None = None):
        self.charges = charges or []
        self.subscriptions = subscriptions or []
        self.error = error
        self.charge_calls: list[tuple[datetime, datetime]] = []

    def list_charges(self, start, end):
        self.charge_calls.append((start, end))
        if self.error:
            raise UpstreamError(self.error)
        return list(self.charges)

    def list_active_subscriptions(self):
        if self.error:
            raise UpstreamError(self.error)
        return list(self.subscriptions)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 15, 12, 0, tzinfo=UTC))


@pytest.fixture
def accumulator(clock):
    return RevenueAccumulator(clock=clock)


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def app(accumulator, payments, clock):
    return create_app(
        settings=Settings(env={}),
        accumulator=accumulator,
        payments=payments,
        clock=clock,
    )


@pytest.fixture
def client(app):
    return TestClient(app)
