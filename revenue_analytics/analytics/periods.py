# revenue_analytics/analytics/periods.py
from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def _as_utc(now: datetime) -> datetime:
    # Naive datetimes are taken to already be UTC.
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now.astimezone(UTC)


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def current_month_key(now: datetime | None = None) -> str:
    now = _as_utc(now or utc_now())
    return month_key(now.year, now.month)


def previous_month_key(now: datetime | None = None) -> str:
    """
    Key of the calendar month before `now`.

    Works on the month index only, so March 31 maps to February and
    January maps to December of the previous year.
    """
    now = _as_utc(now or utc_now())
    if now.month == 1:
        return month_key(now.year - 1, 12)
    return month_key(now.year, now.month - 1)
