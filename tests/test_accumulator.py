# tests/test_accumulator.py
import threading
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from revenue_analytics.analytics.accumulator import RevenueAccumulator
from revenue_analytics.analytics.errors import InvalidAmount, MissingService, ValidationError


def test_record_updates_total_month_and_service(accumulator):
    accumulator.record_revenue(10, "billing", "cus_1")
    new_total = accumulator.record_revenue(2.5, "billing", "cus_2", {"plan": "pro"})
    view = accumulator.snapshot()
    assert new_total == Decimal("12.5")
    assert view.total_revenue == Decimal("12.5")
    assert view.revenue_by_month == {"2024-03": Decimal("12.5")}
    assert view.revenue_by_service == {"billing": Decimal("12.5")}


def test_month_bucket_follows_clock(clock, accumulator):
    accumulator.record_revenue(100, "api")
    clock.now = datetime(2024, 4, 1, 0, 0, tzinfo=UTC)
    accumulator.record_revenue(50, "api")
    view = accumulator.snapshot()
    assert view.revenue_by_month == {"2024-03": Decimal("100"), "2024-04": Decimal("50")}
    assert sum(view.revenue_by_month.values()) == view.total_revenue


def test_zero_amount_is_accepted(accumulator):
    assert accumulator.record_revenue(0, "api") == Decimal("0")
    assert accumulator.snapshot().revenue_by_service == {"api": Decimal("0")}


@pytest.mark.parametrize(
    "amount", [-1, -0.01, float("nan"), float("inf"), None, True, "abc", [1]]
)
def test_invalid_amount_leaves_state_unchanged(accumulator, amount):
    accumulator.record_revenue(5, "api")
    before = accumulator.snapshot()
    with pytest.raises(InvalidAmount):
        accumulator.record_revenue(amount, "api")
    assert accumulator.snapshot() == before


@pytest.mark.parametrize("service", [None, "", "   "])
def test_missing_service_rejected(accumulator, service):
    with pytest.raises(MissingService):
        accumulator.record_revenue(5, service)
    assert accumulator.snapshot().total_revenue == 0


def test_snapshot_is_read_only_and_detached(accumulator):
    accumulator.record_revenue(5, "api")
    view = accumulator.snapshot()
    with pytest.raises(TypeError):
        view.revenue_by_service["api"] = Decimal("1000")
    accumulator.record_revenue(5, "api")
    assert view.revenue_by_service["api"] == Decimal("5")
    assert accumulator.snapshot().revenue_by_service["api"] == Decimal("10")


def test_snapshot_is_idempotent(accumulator):
    accumulator.record_revenue(7, "api")
    assert accumulator.snapshot() == accumulator.snapshot()


def test_service_order_is_insertion_order(accumulator):
    for svc in ["b", "a", "c", "a"]:
        accumulator.record_revenue(1, svc)
    assert list(accumulator.snapshot().revenue_by_service) == ["b", "a", "c"]


def test_counter_hooks(accumulator):
    accumulator.set_subscriptions(active=45, churned=3, mrr=1200)
    accumulator.set_subscriptions(churned=4)
    accumulator.set_customers(total=10, new=2, ltv="350.50")
    view = accumulator.snapshot()
    assert (view.subscriptions.active, view.subscriptions.churned) == (45, 4)
    assert view.subscriptions.mrr == Decimal("1200")
    assert view.customers.total == 10
    assert view.customers.ltv == Decimal("350.50")


def test_counter_hooks_validate(accumulator):
    accumulator.set_subscriptions(active=1)
    with pytest.raises(ValidationError):
        accumulator.set_subscriptions(active=-1, churned=2)
    with pytest.raises(ValidationError):
        accumulator.set_customers(ltv=-5)
    view = accumulator.snapshot()
    assert view.subscriptions.active == 1
    assert view.subscriptions.churned == 0
    assert view.customers.ltv == 0


def test_concurrent_records_are_not_lost():
    acc = RevenueAccumulator()

    def worker():
        for _ in range(200):
            acc.record_revenue(1, "api")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    view = acc.snapshot()
    assert view.total_revenue == 1600
    assert view.revenue_by_service["api"] == 1600
    assert sum(view.revenue_by_month.values()) == 1600
