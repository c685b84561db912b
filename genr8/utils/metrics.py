"""
Prometheus metrics for dispatch, payments, buybacks and refunds, served at /metrics.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
generations_dispatched_total = Counter(
    "generations_dispatched_total",
    "Total number of provider tasks dispatched",
    ["model"],
)

generations_finished_total = Counter(
    "generations_finished_total",
    "Total number of tasks observed in a terminal state",
    ["model", "state"],
)

payment_required_total = Counter(
    "payment_required_total",
    "Total 402 quotes issued",
    ["model"],
)

payments_verified_total = Counter(
    "payments_verified_total",
    "Total payment verifications",
    ["result"],  # verified / rejected
)

buyback_contributions_total = Counter(
    "buyback_contributions_total",
    "Total buyback contribution writes",
    ["result"],  # queued / failed
)

buyback_batches_total = Counter(
    "buyback_batches_total",
    "Total buyback executor runs",
    ["outcome"],  # executed / noop / below_floor / failed
)

refunds_total = Counter(
    "refunds_total",
    "Total refund attempts",
    ["token", "status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
provider_request_duration_seconds = Histogram(
    "provider_request_duration_seconds",
    "Provider API request duration",
    ["model"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
