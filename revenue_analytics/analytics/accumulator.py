# revenue_analytics/analytics/accumulator.py
from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any

from revenue_analytics.analytics.errors import InvalidAmount, MissingService, ValidationError
from revenue_analytics.analytics.periods import current_month_key, utc_now

ZERO = Decimal("0")


@dataclass(frozen=True)
class SubscriptionCounters:
    active: int = 0
    churned: int = 0
    mrr: Decimal = ZERO


@dataclass(frozen=True)
class CustomerCounters:
    total: int = 0
    new: int = 0
    ltv: Decimal = ZERO


@dataclass(frozen=True)
class AccumulatorView:
    """Read-only copy of the accumulator at one instant."""

    total_revenue: Decimal = ZERO
    revenue_by_month: Mapping[str, Decimal] = field(default_factory=lambda: MappingProxyType({}))
    revenue_by_service: Mapping[str, Decimal] = field(
        default_factory=lambda: MappingProxyType({})
    )
    subscriptions: SubscriptionCounters = field(default_factory=SubscriptionCounters)
    customers: CustomerCounters = field(default_factory=CustomerCounters)


def to_amount(
    value: Any, error_cls: type[ValidationError] = InvalidAmount, name: str = "amount"
) -> Decimal:
    """Coerce a JSON number into a finite, non-negative Decimal."""
    if value is None:
        raise error_cls(f"{name} is required")
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
        raise error_cls(f"{name} must be a number")
    try:
        # str() keeps 10.1 as 10.1 instead of its binary expansion
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise error_cls(f"{name} must be a number") from e
    if not amount.is_finite():
        raise error_cls(f"{name} must be a finite number")
    if amount < 0:
        raise error_cls(f"{name} must not be negative")
    return amount


def _to_count(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer")
    return value


class RevenueAccumulator:
    """
    In-memory revenue counters for the lifetime of the process.

    NOT for multi-process or multi-instance accuracy; every worker keeps
    its own totals. All reads and writes go through one lock so a snapshot
    never sees a half-applied event.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._lock = threading.Lock()
        self._clock = clock
        self._total = ZERO
        self._by_month: dict[str, Decimal] = {}
        self._by_service: dict[str, Decimal] = {}
        self._subscriptions = SubscriptionCounters()
        self._customers = CustomerCounters()

    def record_revenue(
        self,
        amount: Any,
        service: str | None,
        customer_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> Decimal:
        """
        Add one revenue event and return the new total.

        customer_id and metadata are accepted for the event contract but are
        not aggregated.
        """
        value = to_amount(amount)
        if not isinstance(service, str) or not service.strip():
            raise MissingService("service is required")

        month = current_month_key(self._clock())
        with self._lock:
            self._total += value
            self._by_month[month] = self._by_month.get(month, ZERO) + value
            self._by_service[service] = self._by_service.get(service, ZERO) + value
            return self._total

    def set_subscriptions(
        self,
        active: int | None = None,
        churned: int | None = None,
        mrr: Any = None,
    ) -> SubscriptionCounters:
        """Overwrite subscription counters; None leaves a field as is."""
        changes: dict[str, Any] = {}
        if active is not None:
            changes["active"] = _to_count(active, "active")
        if churned is not None:
            changes["churned"] = _to_count(churned, "churned")
        if mrr is not None:
            changes["mrr"] = to_amount(mrr, ValidationError, "mrr")
        with self._lock:
            self._subscriptions = replace(self._subscriptions, **changes)
            return self._subscriptions

    def set_customers(
        self,
        total: int | None = None,
        new: int | None = None,
        ltv: Any = None,
    ) -> CustomerCounters:
        """Overwrite customer counters; None leaves a field as is."""
        changes: dict[str, Any] = {}
        if total is not None:
            changes["total"] = _to_count(total, "total")
        if new is not None:
            changes["new"] = _to_count(new, "new")
        if ltv is not None:
            changes["ltv"] = to_amount(ltv, ValidationError, "ltv")
        with self._lock:
            self._customers = replace(self._customers, **changes)
            return self._customers

    def snapshot(self) -> AccumulatorView:
        with self._lock:
            return AccumulatorView(
                total_revenue=self._total,
                revenue_by_month=MappingProxyType(dict(self._by_month)),
                revenue_by_service=MappingProxyType(dict(self._by_service)),
                subscriptions=self._subscriptions,
                customers=self._customers,
            )
