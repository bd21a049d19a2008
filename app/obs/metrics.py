# app/obs/metrics.py
import os
import time

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    multiprocess,
)
from starlette.middleware.base import BaseHTTPMiddleware

http_requests_total = Counter("http_requests_total", "HTTP requests", ["method", "path", "code"])
http_request_duration = Histogram(
    "http_request_duration_seconds", "HTTP request duration seconds", ["method", "path"]
)

order_create_total = Counter(
    "order_create_total", "Order creation attempts", ["result"]
)  # created|idempotent|insufficient_stock|rejected
inventory_movement_total = Counter(
    "inventory_movement_total", "Stock movements appended", ["action"]
)
payment_reconcile_total = Counter(
    "payment_reconcile_total", "Reconciliation outcomes per payment", ["outcome"]
)  # settled|cancelled|skipped|failed|noop
payment_reconcile_duration = Histogram(
    "payment_reconcile_duration_seconds", "Duration of one reconciliation tick"
)
payment_pending_gauge = Gauge("payment_pending", "Pending payments seen by the last tick")
gateway_errors_total = Counter("gateway_errors_total", "Payment gateway errors", ["op", "kind"])


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        # route template keeps label cardinality bounded (/orders/{order_id})
        route = request.scope.get("route")
        path = getattr(route, "path", None) or "unmatched"
        http_requests_total.labels(request.method, path, str(response.status_code)).inc()
        http_request_duration.labels(request.method, path).observe(elapsed)
        return response


router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics() -> Response:
    """
    Single process: export the default REGISTRY.
    Multi process (PROMETHEUS_MULTIPROC_DIR set): merge the shard files.
    """
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        payload = generate_latest(registry)
    else:
        payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
