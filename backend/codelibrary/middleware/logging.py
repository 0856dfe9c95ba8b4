"""
Code Library Backend — Request Logging Middleware
==================================================

What:  One access log line per HTTP request: method, path, status, duration,
       request ID and client address.
How:   Severity follows the status class (5xx ERROR, 4xx WARNING, else INFO).
       Health probes are not logged.

Request and response bodies are never logged: snippet code and sign-up
passwords must not reach the log stream. The Authorization header is never
logged either.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from codelibrary.middleware.request_id import request_id_var

logger = logging.getLogger("codelibrary.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request once, after the response status is known."""

    def __init__(self, app: ASGIApp, skip_paths: tuple = ("/health",)):
        super().__init__(app)
        self.skip_paths = frozenset(skip_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.skip_paths:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
