# revenue_analytics/payments/stripe_client.py
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import stripe

from revenue_analytics.analytics.accumulator import ZERO
from revenue_analytics.analytics.errors import UpstreamError
from revenue_analytics.metrics import STRIPE_CALLS_TOTAL

log = logging.getLogger("revenue_analytics")

# Stripe reports amounts in the currency's minor unit (cents).
MINOR_UNITS = Decimal("100")


@dataclass(frozen=True)
class Charge:
    id: str
    amount: Decimal
    currency: str | None
    created: datetime
    customer: str | None
    paid: bool


@dataclass(frozen=True)
class Subscription:
    id: str
    customer: str | None
    status: str | None
    amount: Decimal
    interval: str | None
    created: datetime


def from_minor_units(value: Any) -> Decimal:
    return Decimal(value or 0) / MINOR_UNITS


def _ts(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value or 0), tz=UTC)


def _as_dict(obj: Any) -> dict[str, Any]:
    """
    Plain dict view of a Stripe object. From stripe-python 15 on,
    StripeObject is no longer a dict subclass, so `.get` is unavailable.
    """
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return obj


def charge_from_stripe(obj: Any) -> Charge:
    obj = _as_dict(obj)
    return Charge(
        id=obj.get("id"),
        amount=from_minor_units(obj.get("amount")),
        currency=obj.get("currency"),
        created=_ts(obj.get("created")),
        customer=obj.get("customer"),
        paid=bool(obj.get("paid")),
    )


def subscription_from_stripe(obj: Any) -> Subscription:
    obj = _as_dict(obj)
    # Only the first item's price is considered, same as the dashboard's MRR.
    items = _as_dict(obj.get("items")).get("data") or []
    price = _as_dict(items[0]).get("price") if items else None
    price = _as_dict(price)
    recurring = _as_dict(price.get("recurring"))
    return Subscription(
        id=obj.get("id"),
        customer=obj.get("customer"),
        status=obj.get("status"),
        amount=from_minor_units(price.get("unit_amount")),
        interval=recurring.get("interval"),
        created=_ts(obj.get("created")),
    )


def charge_revenue(charges: Iterable[Charge]) -> Decimal:
    """Sum of paid charges, in major units."""
    return sum((c.amount for c in charges if c.paid), ZERO)


def subscription_mrr(subscriptions: Iterable[Subscription]) -> Decimal:
    return sum((s.amount for s in subscriptions), ZERO)


class StripePaymentProcessor:
    """
    Read-only view of charges and subscriptions in a Stripe account.

    Single page per call, no retries. Every failure surfaces as UpstreamError.
    """

    def __init__(self, api_key: str | None, page_limit: int = 100):
        self.api_key = api_key
        self.page_limit = page_limit

    def _require_key(self) -> str:
        if not self.api_key:
            raise UpstreamError("Stripe API key is not configured (set STRIPE_SECRET_KEY)")
        return self.api_key

    def _call(self, operation: str, fn, **params) -> list[Any]:
        api_key = self._require_key()
        try:
            result = fn(api_key=api_key, limit=self.page_limit, **params)
        except stripe.StripeError as e:
            STRIPE_CALLS_TOTAL.labels(operation=operation, outcome="error").inc()
            log.error(f'stripe_error operation="{operation}" err="{e}"')
            raise UpstreamError(getattr(e, "user_message", None) or str(e)) from e
        STRIPE_CALLS_TOTAL.labels(operation=operation, outcome="ok").inc()
        return list(result.data)

    def list_charges(self, start: datetime, end: datetime) -> list[Charge]:
        data = self._call(
            "charges.list",
            stripe.Charge.list,
            created={"gte": int(start.timestamp()), "lte": int(end.timestamp())},
        )
        return [charge_from_stripe(c) for c in data]

    def list_active_subscriptions(self) -> list[Subscription]:
        data = self._call("subscriptions.list", stripe.Subscription.list, status="active")
        return [subscription_from_stripe(s) for s in data]
