# tests/test_recommendations.py
from datetime import UTC, datetime
from decimal import Decimal
from types import MappingProxyType

from revenue_analytics.analytics.accumulator import AccumulatorView, SubscriptionCounters
from revenue_analytics.analytics.recommendations import (
    Priority,
    evaluate,
    summarize,
    top_service,
)

NOW = datetime(2024, 3, 15, tzinfo=UTC)


def _view(by_service=None, by_month=None, active=0, churned=0, mrr="0"):
    by_service = by_service or {}
    return AccumulatorView(
        total_revenue=sum((Decimal(v) for v in by_service.values()), Decimal("0")),
        revenue_by_month=MappingProxyType({k: Decimal(v) for k, v in (by_month or {}).items()}),
        revenue_by_service=MappingProxyType({k: Decimal(v) for k, v in by_service.items()}),
        subscriptions=SubscriptionCounters(active=active, churned=churned, mrr=Decimal(mrr)),
    )


def test_concentration_names_top_service():
    view = _view({"A": 80, "B": 20}, {"2024-02": 100, "2024-03": 200})
    recs = evaluate(view, NOW)
    assert [r.category for r in recs] == ["Diversification"]
    rec = recs[0]
    assert rec.priority == Priority.MEDIUM
    assert rec.issue == "80% of revenue from A"
    assert rec.impact_amount is None


def test_concentration_at_threshold_does_not_fire():
    view = _view({"A": 70, "B": 30}, {"2024-02": 100, "2024-03": 200})
    assert evaluate(view, NOW) == []


def test_top_service_tie_first_seen_wins():
    assert top_service({"A": Decimal(5), "B": Decimal(5)}) == ("A", Decimal(5))
    assert top_service({"A": Decimal(5), "B": Decimal(6)}) == ("B", Decimal(6))
    assert top_service({}) is None


def test_empty_history_triggers_growth_only():
    recs = evaluate(_view(), NOW)
    assert [r.category for r in recs] == ["Growth"]
    assert recs[0].issue == "Low growth rate: 0.00%"
    assert recs[0].potential_impact == "Increase growth to 15% monthly could add $0.00 MRR"


def test_all_rules_fire_in_fixed_order():
    view = _view({"A": 100}, active=100, churned=10, mrr="1000")
    recs = evaluate(view, NOW)
    assert [r.category for r in recs] == ["Retention", "Diversification", "Growth"]
    assert recs[0].issue == "High churn rate: 10.00%"
    assert recs[0].potential_impact == "Reduce churn by 50% could increase MRR by $50.00"
    assert recs[2].potential_impact == "Increase growth to 15% monthly could add $150.00 MRR"

    summary = summarize(recs)
    assert summary.total_recommendations == 3
    assert summary.high_priority == 2
    assert summary.potential_monthly_impact == Decimal("200.00")
    assert summary.to_dict()["potential_monthly_impact"] == "$200.00"


def test_churn_at_threshold_does_not_fire():
    view = _view(active=100, churned=5, mrr="1000")
    assert "Retention" not in [r.category for r in evaluate(view, NOW)]


def test_growth_above_threshold_does_not_fire():
    view = _view(by_month={"2024-02": 100, "2024-03": 110})
    assert evaluate(view, NOW) == []
    view = _view(by_month={"2024-02": 100, "2024-03": 109})
    assert [r.category for r in evaluate(view, NOW)] == ["Growth"]


def test_summary_sums_rounded_impacts():
    view = _view(active=10, churned=1, mrr="33.33")
    recs = evaluate(view, NOW)
    assert [r.impact_amount for r in recs] == [Decimal("1.67"), Decimal("5.00")]
    assert summarize(recs).to_dict() == {
        "total_recommendations": 2,
        "high_priority": 2,
        "potential_monthly_impact": "$6.67",
    }


def test_to_dict_shape():
    rec = evaluate(_view(), NOW)[0]
    assert rec.to_dict() == {
        "category": "Growth",
        "priority": "high",
        "issue": "Low growth rate: 0.00%",
        "recommendation": "Launch targeted marketing campaigns and referral programs",
        "potential_impact": "Increase growth to 15% monthly could add $0.00 MRR",
    }


def test_evaluate_is_stateless():
    view = _view({"A": 90, "B": 10}, active=20, churned=2, mrr="400")
    assert evaluate(view, NOW) == evaluate(view, NOW)
