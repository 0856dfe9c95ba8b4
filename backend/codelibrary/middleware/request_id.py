"""
Code Library Backend — Request ID Middleware
=============================================

What:  Assigns a correlation ID to each request and returns it in X-Request-ID.
How:   Reuses a client-supplied X-Request-ID header or generates a short UUID,
       stores it in a ContextVar for loggers and exception handlers, and in
       request.state for route handlers.
When:  Outermost middleware; runs before everything else.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests on one event loop each see their own ID.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to the context, the request state and the response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        # Not reset afterwards: the fallback 500 handler runs in the outer
        # ServerErrorMiddleware, after this dispatch has unwound.
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
