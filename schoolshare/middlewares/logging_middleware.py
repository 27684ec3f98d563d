"""
Structured request logging middleware.

Propagates a request id and logs failed or slow requests.
"""
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from schoolshare.utils.client_ip import get_client_ip
from schoolshare.utils.logger import log_error, log_warning, set_request_id

# Slow response threshold (ms)
SLOW_REQUEST_THRESHOLD_MS = 3000

REQUEST_ID_HEADER = "X-Request-ID"

EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc", "/metrics", "/favicon.ico"}


def _loggable_path(request: Request) -> str:
    # share tokens are secrets; log the route template instead of the raw path
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logging policy (keeps production noise low):
    - 5xx responses -> ERROR
    - 4xx responses -> WARNING
    - slow responses (3s and above) -> WARNING
    - successful responses are not logged
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        rid = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        client_ip = get_client_ip(request)
        user_agent = request.headers.get("user-agent")

        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            log_error(
                f"Request exception: {type(e).__name__}",
                error_type=type(e).__name__,
                error_message=str(e),
                http_method=request.method,
                http_path=_loggable_path(request),
                duration_ms=duration_ms,
                client_ip=client_ip,
                user_agent=user_agent,
                request_id=rid,
                event="request",
                exc_info=True,
            )
            # let the global exception handler build the response
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = rid
        status_code = response.status_code
        fields = dict(
            http_method=request.method,
            http_path=_loggable_path(request),
            http_status=status_code,
            duration_ms=duration_ms,
            client_ip=client_ip,
            user_agent=user_agent,
            request_id=rid,
            event="request",
        )

        if status_code >= 500:
            log_error("Request error - Server error occurred", error_code=f"HTTP_{status_code}", **fields)
        elif status_code >= 400:
            log_warning("Request failed - Client error", **fields)
        elif duration_ms >= SLOW_REQUEST_THRESHOLD_MS:
            log_warning("Slow request detected", performance_issue=True, **fields)

        return response
