"""
Request observability.

Every request runs under a correlation id: taken from the inbound
``X-Correlation-ID`` header or generated, echoed back on the response and
stamped on every log record emitted while the request is served (engine
logs included, see ``CorrelationIdFilter``). One summary line per request
is written to the ``score_ledger.requests`` logger.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="-")

logger = logging.getLogger("score_ledger.requests")


class CorrelationIdFilter(logging.Filter):
    """Expose the current correlation id as ``%(correlation_id)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get()
        return True


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        token = correlation_id.set(request_id)
        request.state.caller = None
        started = time.perf_counter()

        try:
            response = await call_next(request)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            correlation_id.reset(token)

        response.headers[CORRELATION_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}"

        # Filled in by the auth dependency once the token is verified
        caller = request.state.caller or "anonymous"

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            "%s %s -> %s in %.2fms caller=%s request=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            caller,
            request_id,
        )
        return response
