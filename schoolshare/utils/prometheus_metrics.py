"""
Prometheus metrics for stability and share access monitoring.

- FastAPI: request count, latency (Instrumentator)
- Stability: exceptions_total, db_errors_total, external_request_errors_total, log_queue_size
- HA: ready gauge (1=up, 0=shutting down), in-flight requests
- Share: creation by scope, access attempts by outcome kind, materialized rows
- Tagging: operations by type and result
"""
import logging
import socket
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from prometheus_client import REGISTRY, Counter, Gauge, Histogram
from prometheus_client.core import GaugeMetricFamily
from prometheus_fastapi_instrumentator import Instrumentator

from schoolshare.config import get_settings

logger = logging.getLogger(__name__)

# --- Stability ---
exceptions_total = Counter(
    "schoolshare_exceptions_total",
    "Total unhandled exceptions",
    registry=REGISTRY,
)
db_errors_total = Counter(
    "schoolshare_db_errors_total",
    "Total database session/transaction errors",
    registry=REGISTRY,
)
external_request_errors_total = Counter(
    "schoolshare_external_request_errors_total",
    "Total external API request failures",
    ["service"],
    registry=REGISTRY,
)
external_request_duration_seconds = Histogram(
    "schoolshare_external_request_duration_seconds",
    "External API request duration in seconds",
    ["service", "result"],  # result: success | failure
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

# --- HA ---
ready = Gauge(
    "schoolshare_ready",
    "Application ready (1=up, 0=shutting down)",
    registry=REGISTRY,
)
in_flight_requests = Gauge(
    "schoolshare_in_flight_requests",
    "Number of requests currently being processed",
    registry=REGISTRY,
)

# --- Rate limiting ---
rate_limit_hits_total = Counter(
    "schoolshare_rate_limit_hits_total",
    "Total number of rate limit hits (requests blocked)",
    ["endpoint"],
    registry=REGISTRY,
)

# --- Admin auth ---
admin_login_total = Counter(
    "schoolshare_admin_login_total",
    "Total admin login attempts",
    ["result"],  # success | failure
    registry=REGISTRY,
)
login_duration_seconds = Histogram(
    "schoolshare_login_duration_seconds",
    "Admin login duration in seconds (bcrypt dominated)",
    ["result"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
    registry=REGISTRY,
)

# --- Share tokens ---
share_creation_total = Counter(
    "schoolshare_share_creation_total",
    "Total number of share token creation attempts",
    ["scope", "result"],  # scope: folder | event | photos, result: success | failure
    registry=REGISTRY,
)
share_access_total = Counter(
    "schoolshare_share_access_total",
    "Total number of share token validations by outcome",
    # outcome: success | not_found | revoked | expired | view_limit_exceeded | unauthorized
    ["outcome"],
    registry=REGISTRY,
)
share_brute_force_attempts = Counter(
    "schoolshare_share_brute_force_attempts_total",
    "Validations with an unknown token (possible brute force)",
    registry=REGISTRY,
)
share_access_duration_seconds = Histogram(
    "schoolshare_share_access_duration_seconds",
    "Share validation duration in seconds",
    ["outcome"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=REGISTRY,
)
share_contents_materialized = Histogram(
    "schoolshare_share_contents_materialized_rows",
    "Rows written per share contents materialization",
    buckets=(0, 1, 10, 50, 100, 500, 1000, 5000, 20000),
    registry=REGISTRY,
)
share_contents_fallback_total = Counter(
    "schoolshare_share_contents_fallback_total",
    "Validations that resolved the scope live because the contents cache was empty",
    registry=REGISTRY,
)
share_revocations_total = Counter(
    "schoolshare_share_revocations_total",
    "Total share tokens revoked",
    registry=REGISTRY,
)

# --- Tagging ---
tagging_operations_total = Counter(
    "schoolshare_tagging_operations_total",
    "Total photo tagging operations",
    ["operation", "result"],  # operation: assign | unassign | batch_assign | batch_unassign | bulk_assign
    registry=REGISTRY,
)
tagging_photos_affected = Counter(
    "schoolshare_tagging_photos_affected_total",
    "Photos affected by tagging operations",
    ["operation"],
    registry=REGISTRY,
)


class LogQueueSizeCollector:
    """Reports the remote log shipper queue size (backpressure indicator)."""

    def collect(self):
        try:
            from schoolshare.services.log_shipper import get_log_shipper
            size = get_log_shipper().queue_size()
        except Exception:
            size = 0
        metric = GaugeMetricFamily(
            "schoolshare_log_queue_size",
            "Remote log queue length (high = backpressure)",
        )
        metric.add_metric([], float(size))
        yield metric


def _node_identity() -> str:
    """Node/instance identifier: NODE_NAME env or hostname."""
    settings = get_settings()
    if settings.node_name:
        return settings.node_name
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


@asynccontextmanager
async def record_external_request(service: str) -> AsyncGenerator[None, None]:
    """Record duration and failures of an outbound HTTP call."""
    start = time.perf_counter()
    failed = False
    try:
        yield
    except Exception:
        failed = True
        external_request_errors_total.labels(service=service).inc()
        raise
    finally:
        duration = time.perf_counter() - start
        external_request_duration_seconds.labels(
            service=service, result="failure" if failed else "success"
        ).observe(duration)


def setup_prometheus(app) -> None:
    """
    Register Prometheus instrumentation and custom metrics.

    1. app_info + Instrumentator (FastAPI request metrics).
    2. log queue collector.
    3. /metrics endpoint for scraping.
    """
    settings = get_settings()

    app_info = Gauge(
        "schoolshare_app_info",
        "Application and node identity (labels only, value is 1)",
        ["node", "app", "version", "environment"],
        registry=REGISTRY,
    )
    app_info.labels(
        node=_node_identity(),
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    ).set(1)

    REGISTRY.register(LogQueueSizeCollector())

    Instrumentator(should_group_status_codes=False).instrument(app).expose(
        app, endpoint="/metrics"
    )
