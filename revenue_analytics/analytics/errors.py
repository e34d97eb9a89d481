# revenue_analytics/analytics/errors.py
from __future__ import annotations


class AnalyticsError(Exception):
    """Base error; every subclass maps to an HTTP status and a `{"error": msg}` body."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AnalyticsError):
    status_code = 400


class InvalidAmount(ValidationError):
    pass


class MissingService(ValidationError):
    pass


class UpstreamError(AnalyticsError):
    """The payment processor failed or is not configured."""

    status_code = 500
