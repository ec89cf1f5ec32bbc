"""
Request Middleware

Correlation ID: tags each request so trigger activation logs can be traced.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.shared.core.logging import set_correlation_id

REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Assigns a correlation ID to each request.

    An incoming X-Request-ID (e.g. from the CRM frontend or the cron that
    drives the dispatch poller) is reused; otherwise a new one is generated.
    The ID is echoed back in the response headers.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = set_correlation_id(request.headers.get(REQUEST_ID_HEADER))

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = correlation_id

        return response
