"""
Prometheus metrics instrumentation.
Adds custom metrics for monitoring API, task lifecycle and live feeds.
"""
from prometheus_client import Counter, Histogram, Gauge, Info
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

# API Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency',
    ['method', 'endpoint']
)

# Task lifecycle Metrics
task_transitions_total = Counter(
    'task_transitions_total',
    'Applied task status transitions',
    ['event']
)

task_actions_rejected_total = Counter(
    'task_actions_rejected_total',
    'Task actions refused by authorization or validation',
    ['event', 'reason']
)

# Aggregation Metrics
turnaround_recomputes_total = Counter(
    'turnaround_recomputes_total',
    'Progress aggregator recomputations',
    ['outcome']
)

# Live feed Metrics
active_subscriptions = Gauge(
    'active_subscriptions',
    'Open snapshot subscriptions',
    ['scope']
)

snapshots_delivered_total = Counter(
    'snapshots_delivered_total',
    'Snapshots delivered to subscribers',
    ['scope']
)

# Application Info
app_info = Info('groundcrew_sync', 'Application information')
app_info.info({
    'version': '1.0.0',
    'name': 'Ground Crew Sync'
})

def _endpoint_label(request: Request) -> str:
    """Route template rather than the raw path, so IDs don't explode label cardinality"""
    route = request.scope.get("route")
    return getattr(route, "path_format", None) or getattr(route, "path", None) or "unmatched"

class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP metrics.
    WebSocket feeds bypass it; they are tracked by active_subscriptions.
    """

    async def dispatch(self, request: Request, call_next):
        method = request.method
        start_time = time.perf_counter()
        status = 500

        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            endpoint = _endpoint_label(request)
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
