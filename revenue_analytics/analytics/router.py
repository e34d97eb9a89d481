# revenue_analytics/analytics/router.py
import logging
from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, HTTPException, Query, Request

from revenue_analytics.analytics.errors import AnalyticsError, ValidationError
from revenue_analytics.analytics.kpis import arr, build_dashboard
from revenue_analytics.analytics.models import (
    ChargeOut,
    Dashboard,
    OptimizeOut,
    StripeRevenueOut,
    StripeSubscriptionsOut,
    SubscriptionOut,
    TrackRevenueIn,
    TrackRevenueOut,
)
from revenue_analytics.analytics.recommendations import evaluate, summarize
from revenue_analytics.deps import Accumulator, AppSettings, Clock, Payments
from revenue_analytics.metrics import REVENUE_AMOUNT_TOTAL, REVENUE_EVENTS_TOTAL
from revenue_analytics.observability import request_id
from revenue_analytics.payments.stripe_client import charge_revenue, subscription_mrr

log = logging.getLogger("revenue_analytics")

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def iso_utc(dt: datetime) -> str:
    """2024-01-31T12:00:00.000Z"""
    dt = dt.astimezone(UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_date(raw: str | None, name: str) -> datetime | None:
    if raw is None or not raw.strip():
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError as e:
        raise ValidationError(f"{name} must be an ISO-8601 date, got {raw!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _fail(request: Request, op: str, e: Exception) -> HTTPException:
    """Map an exception to the HTTP error the client sees."""
    if isinstance(e, AnalyticsError):
        status = e.status_code
        msg = e.message
    else:
        status = 500
        msg = str(e)
    level = logging.WARNING if status < 500 else logging.ERROR
    log.log(
        level,
        f'{op}_failed status={status} err="{msg}"',
        extra={"request_id": request_id(request)},
    )
    return HTTPException(status_code=status, detail=msg)


@router.post("/revenue/track", response_model=TrackRevenueOut)
def track_revenue(payload: TrackRevenueIn, request: Request, accumulator: Accumulator):
    try:
        new_total = accumulator.record_revenue(
            amount=payload.amount,
            service=payload.service,
            customer_id=payload.customer_id,
            metadata=payload.metadata,
        )
    except Exception as e:
        REVENUE_EVENTS_TOTAL.labels(outcome="rejected").inc()
        raise _fail(request, "track_revenue", e) from e

    REVENUE_EVENTS_TOTAL.labels(outcome="accepted").inc()
    REVENUE_AMOUNT_TOTAL.inc(payload.amount)
    log.info(
        f'revenue_tracked service="{payload.service}" amount={payload.amount} '
        f"new_total={new_total}",
        extra={"request_id": request_id(request)},
    )
    return TrackRevenueOut(
        success=True, message="Revenue tracked successfully", new_total=new_total
    )


@router.get("/dashboard", response_model=Dashboard)
def dashboard(request: Request, accumulator: Accumulator, clock: Clock):
    try:
        return build_dashboard(accumulator.snapshot(), clock())
    except Exception as e:
        raise _fail(request, "dashboard", e) from e


@router.get("/optimize", response_model=OptimizeOut)
def optimize(request: Request, accumulator: Accumulator, clock: Clock):
    try:
        recs = evaluate(accumulator.snapshot(), clock())
        summary = summarize(recs)
    except Exception as e:
        raise _fail(request, "optimize", e) from e
    return {
        "recommendations": [r.to_dict() for r in recs],
        "summary": summary.to_dict(),
    }


@router.get("/stripe/revenue", response_model=StripeRevenueOut)
def stripe_revenue(
    request: Request,
    payments: Payments,
    clock: Clock,
    settings: AppSettings,
    start_date: str | None = Query(None, alias="startDate", description="ISO-8601 start"),
    end_date: str | None = Query(None, alias="endDate", description="ISO-8601 end"),
):
    try:
        now = clock()
        start = parse_date(start_date, "startDate") or now - timedelta(
            days=settings.REVENUE_WINDOW_DAYS
        )
        end = parse_date(end_date, "endDate") or now
        charges = payments.list_charges(start, end)
    except Exception as e:
        raise _fail(request, "stripe_revenue", e) from e

    return StripeRevenueOut(
        total_revenue=charge_revenue(charges),
        charge_count=len(charges),
        charges=[
            ChargeOut(
                id=c.id,
                amount=c.amount,
                currency=c.currency,
                created=iso_utc(c.created),
                customer=c.customer,
            )
            for c in charges
        ],
    )


@router.get("/stripe/subscriptions", response_model=StripeSubscriptionsOut)
def stripe_subscriptions(request: Request, payments: Payments):
    try:
        subs = payments.list_active_subscriptions()
    except Exception as e:
        raise _fail(request, "stripe_subscriptions", e) from e

    mrr = subscription_mrr(subs)
    return StripeSubscriptionsOut(
        active_subscriptions=len(subs),
        mrr=mrr,
        arr=arr(mrr),
        subscriptions=[
            SubscriptionOut(
                id=s.id,
                customer=s.customer,
                status=s.status,
                amount=s.amount,
                interval=s.interval,
                created=iso_utc(s.created),
            )
            for s in subs
        ],
    )
