from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TrackRevenueIn(CamelModel):
    # Presence and sign are checked by the accumulator so both paths share one message
    amount: float | None = Field(None, description="Amount in major currency units")
    service: str | None = Field(None, description="Reporting service identifier")
    customer_id: str | None = Field(None, description="Opaque customer identifier")
    metadata: dict[str, Any] | None = Field(None, description="Free-form event metadata")


class TrackRevenueOut(CamelModel):
    success: bool
    message: str
    new_total: float


class RevenueBlock(CamelModel):
    total: float
    mrr: float
    growth: str
    by_service: dict[str, float]


class SubscriptionBlock(CamelModel):
    active: int = Field(..., ge=0)
    churned: int = Field(..., ge=0)
    mrr: float
    churn_rate: str


class CustomerBlock(CamelModel):
    total: int = Field(..., ge=0)
    new: int = Field(..., ge=0)
    ltv: float


class Dashboard(CamelModel):
    revenue: RevenueBlock
    subscriptions: SubscriptionBlock
    customers: CustomerBlock


class RecommendationOut(CamelModel):
    category: str
    priority: str = Field(..., description="high|medium")
    issue: str
    recommendation: str
    potential_impact: str


class RecommendationSummaryOut(CamelModel):
    total_recommendations: int
    high_priority: int
    potential_monthly_impact: str = Field(..., description="Formatted as $X.XX")


class OptimizeOut(CamelModel):
    recommendations: list[RecommendationOut]
    summary: RecommendationSummaryOut


class ChargeOut(CamelModel):
    id: str
    amount: float
    currency: str | None = None
    created: str = Field(..., description="ISO-8601 UTC, millisecond precision")
    customer: str | None = None


class StripeRevenueOut(CamelModel):
    total_revenue: float
    charge_count: int
    charges: list[ChargeOut]


class SubscriptionOut(CamelModel):
    id: str
    customer: str | None = None
    status: str | None = None
    amount: float
    interval: str | None = None
    created: str


class StripeSubscriptionsOut(CamelModel):
    active_subscriptions: int
    mrr: float
    arr: float
    subscriptions: list[SubscriptionOut]


class StatusAnalytics(CamelModel):
    total_revenue: float
    active_subscriptions: int
    total_customers: int


class StatusOut(CamelModel):
    service: str
    version: str
    status: str
    uptime: float
    analytics: StatusAnalytics
