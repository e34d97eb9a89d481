from __future__ import annotations

import time
from collections.abc import Callable

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response as StarletteResponse

# HTTP metrics (cardinality kept low by using path templates)
HTTP_REQUESTS_TOTAL = Counter(
    "revenue_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "revenue_http_request_duration_seconds",
    "HTTP request latency (seconds)",
    ["method", "path", "status"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

HTTP_ERRORS_TOTAL = Counter(
    "revenue_http_errors_total",
    "Total 5xx responses",
    ["method", "path"],
)

# Domain metrics. Service names are free-form, so they are not used as labels.
REVENUE_EVENTS_TOTAL = Counter(
    "revenue_events_total",
    "Revenue tracking events by outcome",
    ["outcome"],
)

REVENUE_AMOUNT_TOTAL = Counter(
    "revenue_tracked_amount_total",
    "Sum of accepted revenue amounts (major currency units)",
)

STRIPE_CALLS_TOTAL = Counter(
    "revenue_stripe_calls_total",
    "Stripe API calls by operation and outcome",
    ["operation", "outcome"],
)


def _path_template(request: Request) -> str:
    """
    Return the route path template (e.g., '/api/analytics/dashboard').
    Falls back to the raw path if the template is unavailable.
    """
    route = request.scope.get("route")
    if route and getattr(route, "path", None):
        return route.path
    return request.url.path


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Records Prometheus metrics for each request:
      - requests total (method, path, status)
      - latency histogram (method, path, status)
      - errors total (5xx)
    """

    def __init__(self, app, skip_predicate: Callable[[Request], bool] | None = None):
        super().__init__(app)
        self._skip = skip_predicate or (lambda req: False)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> StarletteResponse:
        if self._skip(request):
            return await call_next(request)

        start = time.time()
        method = request.method

        try:
            response = await call_next(request)
        except Exception:
            HTTP_ERRORS_TOTAL.labels(method=method, path=_path_template(request)).inc()
            raise

        # The route is only resolved once the request went through the router.
        path = _path_template(request)
        status = str(response.status_code)
        HTTP_REQUESTS_TOTAL.labels(method=method, path=path, status=status).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(method=method, path=path, status=status).observe(
            time.time() - start
        )

        if response.status_code >= 500:
            HTTP_ERRORS_TOTAL.labels(method=method, path=path).inc()

        return response


def metrics_endpoint() -> Response:
    """Return the Prometheus metrics exposition."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
