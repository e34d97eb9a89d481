# revenue_analytics/analytics/kpis.py
"""
Derived revenue KPIs.

Everything here is a pure function of an AccumulatorView (plus "now" where a
calendar month matters). Percentages are rounded half-up to 2 dp and only
turned into strings by the *_rate helpers.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from revenue_analytics.analytics.accumulator import ZERO, AccumulatorView
from revenue_analytics.analytics.periods import current_month_key, previous_month_key

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = 12

# Rendered growth when there is no previous month to compare against
GROWTH_SENTINEL = "0"


def round2(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_percent(value: Decimal, places: int = 2) -> str:
    exp = Decimal(1).scaleb(-places)
    return f"{Decimal(value).quantize(exp, rounding=ROUND_HALF_UP)}%"


def format_usd(value: Decimal) -> str:
    return f"${round2(value)}"


def growth_percent(current: Decimal, previous: Decimal) -> Decimal:
    if not previous:
        return ZERO
    return (Decimal(current) - Decimal(previous)) / Decimal(previous) * HUNDRED


def growth_rate(current: Decimal, previous: Decimal) -> str:
    if not previous:
        return GROWTH_SENTINEL
    return format_percent(growth_percent(current, previous))


def churn_percent(churned: int, active: int) -> Decimal:
    if active <= 0:
        return ZERO
    return Decimal(churned) / Decimal(active) * HUNDRED


def churn_rate(churned: int, active: int) -> str:
    if active <= 0:
        return "0%"
    return format_percent(churn_percent(churned, active))


def arr(mrr: Decimal) -> Decimal:
    return Decimal(mrr) * MONTHS_PER_YEAR


def month_buckets(view: AccumulatorView, now: datetime | None = None) -> tuple[Decimal, Decimal]:
    """(current month revenue, previous month revenue); missing months count as 0."""
    current = view.revenue_by_month.get(current_month_key(now), ZERO)
    previous = view.revenue_by_month.get(previous_month_key(now), ZERO)
    return current, previous


def build_dashboard(view: AccumulatorView, now: datetime | None = None) -> dict[str, Any]:
    current, previous = month_buckets(view, now)
    subs = view.subscriptions
    customers = view.customers
    return {
        "revenue": {
            "total": view.total_revenue,
            "mrr": current,
            "growth": growth_rate(current, previous),
            "by_service": dict(view.revenue_by_service),
        },
        "subscriptions": {
            "active": subs.active,
            "churned": subs.churned,
            "mrr": subs.mrr,
            "churn_rate": churn_rate(subs.churned, subs.active),
        },
        "customers": {
            "total": customers.total,
            "new": customers.new,
            "ltv": customers.ltv,
        },
    }
