"""
Prometheus metrics endpoint.

Exposes system metrics for monitoring.
"""
from fastapi import APIRouter, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()

# ============================================
# HTTP Request Metrics
# ============================================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# ============================================
# Webhook Metrics
# ============================================

webhook_attempts = Counter(
    'webhook_attempts_total',
    'Total webhook HTTP attempts',
    ['status']
)

webhook_deliveries = Counter(
    'webhook_deliveries_total',
    'Total webhook delivery sequences by final outcome',
    ['outcome']
)

webhook_delivery_duration = Histogram(
    'webhook_delivery_duration_seconds',
    'Wall time of a full delivery sequence, backoff included',
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)


# ============================================
# Metrics Helper Functions
# ============================================

def track_request(method: str, endpoint: str, status: int, duration_seconds: float):
    """
    Record HTTP request metrics.

    Call this after each request.
    """
    http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=status
    ).inc()

    http_request_duration.labels(
        method=method,
        endpoint=endpoint
    ).observe(duration_seconds)


def track_webhook_attempt(status: str):
    """Record one HTTP attempt (success or failed)."""
    webhook_attempts.labels(status=status).inc()


def track_webhook_delivery(outcome: str, duration_seconds: float):
    """Record a finished delivery sequence."""
    webhook_deliveries.labels(outcome=outcome).inc()
    webhook_delivery_duration.observe(duration_seconds)


# ============================================
# Prometheus Endpoint
# ============================================

@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Returns all registered metrics in Prometheus format.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
