"""
Rate limiting middleware using slowapi.
Protects the public share endpoints against token and password guessing.
"""
import logging
from typing import Callable

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from schoolshare.config import get_settings
from schoolshare.utils.client_ip import get_client_ip
from schoolshare.utils.prometheus_metrics import rate_limit_hits_total

logger = logging.getLogger("schoolshare.rate_limit")
settings = get_settings()


def get_client_identifier(request: Request) -> str:
    """Rate limiting key: the real client IP (proxy headers honored)."""
    return get_client_ip(request) or "unknown"


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"] if settings.rate_limit_enabled else [],
    enabled=settings.rate_limit_enabled,
    storage_uri="memory://",  # per process; use a shared backend when running several replicas
)

SHARE_ACCESS_LIMIT = f"{settings.rate_limit_share_per_minute}/minute"


def setup_rate_limit_exception_handler(app) -> None:
    """Register the limiter on the app and the 429 handler."""
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        endpoint = request.url.path
        rate_limit_hits_total.labels(endpoint=_endpoint_label(request)).inc()
        logger.warning(
            "Rate limit exceeded",
            extra={
                "event": "rate_limit",
                "client_ip": get_client_identifier(request),
                "endpoint": endpoint,
                "limit": getattr(exc, "detail", "unknown"),
            },
        )
        return _rate_limit_exceeded_handler(request, exc)


def _endpoint_label(request: Request) -> str:
    # route template keeps tokens out of metric labels
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def get_rate_limit_decorator(limit: str):
    """
    Rate limit decorator helper.

    Args:
        limit: Rate limit string (e.g. "10/minute", "60/hour")

    Returns:
        Rate limit decorator (no-op when rate limiting is disabled)
    """
    if not settings.rate_limit_enabled:
        def noop_decorator(func: Callable) -> Callable:
            return func
        return noop_decorator

    return limiter.limit(limit)
