from collections.abc import Callable
from datetime import datetime
from typing import Annotated

from fastapi import Depends, Request

from revenue_analytics.analytics.accumulator import RevenueAccumulator
from revenue_analytics.config import Settings
from revenue_analytics.payments.stripe_client import StripePaymentProcessor


def get_accumulator(request: Request) -> RevenueAccumulator:
    """The accumulator owned by this app instance (see create_app)."""
    return request.app.state.accumulator


def get_payments(request: Request) -> StripePaymentProcessor:
    """
    Payment processor for the /stripe/* routes.
    Tests swap app.state.payments for any object with the same two methods.
    """
    return request.app.state.payments


def get_clock(request: Request) -> Callable[[], datetime]:
    return request.app.state.clock


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


Accumulator = Annotated[RevenueAccumulator, Depends(get_accumulator)]
Payments = Annotated[StripePaymentProcessor, Depends(get_payments)]
Clock = Annotated[Callable[[], datetime], Depends(get_clock)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
