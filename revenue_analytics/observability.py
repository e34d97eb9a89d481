from __future__ import annotations

import json
import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

LOGGER_NAME = "revenue_analytics"

# Subset of what helmet sets by default for a JSON-only API.
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


class RequestIdFilter(logging.Filter):
    """Ensure every record has a request_id attribute for JSON formatting."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


class JsonLineFormatter(logging.Formatter):
    """
    One JSON object per line:

      {"ts":"...","level":"...","msg":"...","request_id":"..."}

    Fields are JSON-encoded, so quotes in service names or upstream errors
    cannot break the line.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def setup_json_logging(logger_name: str = LOGGER_NAME, level: str = "INFO") -> logging.Logger:
    """
    Configure the service logger with JsonLineFormatter.

    Idempotent: safe to call multiple times (each create_app call does).
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level.upper())
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLineFormatter())
    handler.addFilter(RequestIdFilter())

    logger.addHandler(handler)
    logger.propagate = False
    return logger


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Propagate/assign X-Request-ID and emit a compact access log per request.

    - Accepts incoming X-Request-ID or generates a UUID4.
    - Stores it on request.state.request_id for handlers.
    - Sets X-Request-ID response header.
    """

    def __init__(self, app, logger: logging.Logger):
        super().__init__(app)
        self.log = logger

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        start = time.time()
        client = request.client.host if request.client else "-"
        try:
            response = await call_next(request)
        except Exception:
            self.log.exception(
                'unhandled_exception method="%s" path="%s" duration_ms=%d client="%s"',
                request.method,
                request.url.path,
                int((time.time() - start) * 1000),
                client,
                extra={"request_id": rid},
            )
            raise

        response.headers["X-Request-ID"] = rid
        self.log.info(
            'access method="%s" path="%s" status=%d duration_ms=%d client="%s"',
            request.method,
            request.url.path,
            response.status_code,
            int((time.time() - start) * 1000),
            client,
            extra={"request_id": rid},
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add conservative security headers unless a handler already set them."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


def request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")
