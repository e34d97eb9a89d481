from __future__ import annotations

import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from revenue_analytics.analytics.accumulator import RevenueAccumulator
from revenue_analytics.analytics.models import StatusOut
from revenue_analytics.analytics.periods import utc_now
from revenue_analytics.analytics.router import router as analytics_router
from revenue_analytics.config import Settings
from revenue_analytics.config import settings as default_settings
from revenue_analytics.deps import Accumulator, AppSettings
from revenue_analytics.metrics import MetricsMiddleware, metrics_endpoint
from revenue_analytics.observability import (
    RequestIdMiddleware,
    SecurityHeadersMiddleware,
    request_id,
    setup_json_logging,
)
from revenue_analytics.payments.stripe_client import StripePaymentProcessor

APP_NAME = "revenue-analytics"
APP_DESC = "Revenue tracking, Stripe mirroring and rule-based growth recommendations."
APP_VERSION_FILE = Path(__file__).resolve().parents[1] / "VERSION"

PROCESS_STARTED_AT = time.time()


def read_version_fallback() -> str:
    try:
        return APP_VERSION_FILE.read_text(encoding="utf-8").strip()
    except OSError:
        return "1.0.0"


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())[1:]) or "body"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts) or "invalid request"


def create_app(
    settings: Settings | None = None,
    accumulator: RevenueAccumulator | None = None,
    payments: StripePaymentProcessor | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """
    Build the service. Every collaborator is injectable so tests get an
    isolated accumulator and a fake payment processor.
    """
    settings = settings or default_settings
    log = setup_json_logging(level=settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        endpoints = sorted(
            f"{','.join(sorted(getattr(r, 'methods', None) or []))} {r.path}"
            for r in app.routes
            if getattr(r, "path", "").startswith(("/api", "/health", "/metrics"))
        )
        log.info(
            f'startup service="{settings.SERVICE_NAME}" env="{settings.APP_ENV}" '
            f'port={settings.PORT} stripe_configured={bool(settings.STRIPE_SECRET_KEY)}'
        )
        for ep in endpoints:
            log.info(f"endpoint {ep}")
        yield
        log.info("shutdown complete")

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESC,
        version=read_version_fallback(),
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.accumulator = accumulator or RevenueAccumulator(clock=clock)
    app.state.payments = payments or StripePaymentProcessor(
        api_key=settings.STRIPE_SECRET_KEY, page_limit=settings.STRIPE_PAGE_LIMIT
    )
    app.state.clock = clock

    # Last added runs first: request id wraps everything else.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(MetricsMiddleware, skip_predicate=lambda req: req.url.path == "/metrics")
    app.add_middleware(RequestIdMiddleware, logger=log)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            {"error": str(exc.detail)}, status_code=exc.status_code, headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": _validation_message(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception):
        log.error(
            f"unhandled_error path={request.url.path} err={exc}",
            extra={"request_id": request_id(request)},
        )
        return JSONResponse({"error": str(exc)}, status_code=500)

    @app.get("/health", tags=["core"])
    def health():
        return {"ok": True}

    @app.get("/api/status", response_model=StatusOut, tags=["core"])
    def status(accumulator: Accumulator, settings: AppSettings):
        view = accumulator.snapshot()
        return StatusOut(
            service=settings.SERVICE_NAME,
            version=read_version_fallback(),
            status="operational",
            uptime=time.time() - PROCESS_STARTED_AT,
            analytics={
                "total_revenue": view.total_revenue,
                "active_subscriptions": view.subscriptions.active,
                "total_customers": view.customers.total,
            },
        )

    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["core"])
    app.include_router(analytics_router)
    return app


app = create_app()
