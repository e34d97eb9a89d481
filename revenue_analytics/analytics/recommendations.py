# revenue_analytics/analytics/recommendations.py
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from revenue_analytics.analytics.accumulator import ZERO, AccumulatorView
from revenue_analytics.analytics.kpis import (
    HUNDRED,
    churn_percent,
    format_percent,
    format_usd,
    growth_percent,
    month_buckets,
    round2,
)

CHURN_THRESHOLD = Decimal("5")
CONCENTRATION_THRESHOLD = Decimal("70")
GROWTH_THRESHOLD = Decimal("10")

CHURN_IMPACT_RATIO = Decimal("0.05")
GROWTH_IMPACT_RATIO = Decimal("0.15")


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


@dataclass(frozen=True)
class Recommendation:
    category: str
    priority: Priority
    issue: str
    recommendation: str
    potential_impact: str
    # Dollar amount quoted in potential_impact, already rounded to cents
    impact_amount: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "priority": self.priority.value,
            "issue": self.issue,
            "recommendation": self.recommendation,
            "potential_impact": self.potential_impact,
        }


@dataclass(frozen=True)
class RecommendationSummary:
    total_recommendations: int
    high_priority: int
    potential_monthly_impact: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_recommendations": self.total_recommendations,
            "high_priority": self.high_priority,
            "potential_monthly_impact": format_usd(self.potential_monthly_impact),
        }


Rule = Callable[[AccumulatorView, datetime | None], Recommendation | None]


def churn_rule(view: AccumulatorView, now: datetime | None = None) -> Recommendation | None:
    subs = view.subscriptions
    rate = churn_percent(subs.churned, subs.active)
    if rate <= CHURN_THRESHOLD:
        return None
    impact = round2(subs.mrr * CHURN_IMPACT_RATIO)
    return Recommendation(
        category="Retention",
        priority=Priority.HIGH,
        issue=f"High churn rate: {format_percent(rate)}",
        recommendation="Implement customer feedback surveys and improve onboarding",
        potential_impact=f"Reduce churn by 50% could increase MRR by {format_usd(impact)}",
        impact_amount=impact,
    )


def top_service(by_service: dict[str, Decimal]) -> tuple[str, Decimal] | None:
    """Largest service bucket; on a tie the service seen first wins."""
    best: tuple[str, Decimal] | None = None
    for name, value in by_service.items():
        if best is None or value > best[1]:
            best = (name, value)
    return best


def concentration_rule(
    view: AccumulatorView, now: datetime | None = None
) -> Recommendation | None:
    top = top_service(dict(view.revenue_by_service))
    if top is None or view.total_revenue <= 0:
        return None
    name, value = top
    share = value / view.total_revenue * HUNDRED
    if share <= CONCENTRATION_THRESHOLD:
        return None
    return Recommendation(
        category="Diversification",
        priority=Priority.MEDIUM,
        issue=f"{format_percent(share, places=0)} of revenue from {name}",
        recommendation="Invest in marketing for underperforming services",
        potential_impact="Diversify revenue streams to reduce risk",
    )


def growth_rule(view: AccumulatorView, now: datetime | None = None) -> Recommendation | None:
    current, previous = month_buckets(view, now)
    growth = growth_percent(current, previous)
    if growth >= GROWTH_THRESHOLD:
        return None
    impact = round2(view.subscriptions.mrr * GROWTH_IMPACT_RATIO)
    return Recommendation(
        category="Growth",
        priority=Priority.HIGH,
        issue=f"Low growth rate: {format_percent(growth)}",
        recommendation="Launch targeted marketing campaigns and referral programs",
        potential_impact=f"Increase growth to 15% monthly could add {format_usd(impact)} MRR",
        impact_amount=impact,
    )


# Evaluation order is also the output order.
RULES: tuple[Rule, ...] = (churn_rule, concentration_rule, growth_rule)


def evaluate(
    view: AccumulatorView,
    now: datetime | None = None,
    rules: tuple[Rule, ...] = RULES,
) -> list[Recommendation]:
    out: list[Recommendation] = []
    for rule in rules:
        rec = rule(view, now)
        if rec is not None:
            out.append(rec)
    return out


def summarize(recs: list[Recommendation]) -> RecommendationSummary:
    return RecommendationSummary(
        total_recommendations=len(recs),
        high_priority=sum(1 for r in recs if r.priority == Priority.HIGH),
        potential_monthly_impact=sum((r.impact_amount or ZERO for r in recs), ZERO),
    )
