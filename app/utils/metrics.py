"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
access_requests_total = Counter(
    "access_requests_total",
    "Content access requests by outcome",
    ["outcome"],  # done, not_found, not_published, unavailable
)

access_decisions_total = Counter(
    "access_decisions_total",
    "Per-unit access decisions",
    ["lock_reason"],
)

delegated_urls_total = Counter(
    "delegated_urls_total",
    "Delegated URL issuance attempts",
    ["status"],  # issued, no_key, key_not_found, upstream_unavailable, timeout, error
)

purchase_confirmations_total = Counter(
    "purchase_confirmations_total",
    "Purchase confirmations applied to the ledger",
    ["result"],  # created, duplicate
)

certificate_verifications_total = Counter(
    "certificate_verifications_total",
    "Certificate verification requests",
    ["result"],  # valid, mismatch, not_found
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
access_request_duration_seconds = Histogram(
    "access_request_duration_seconds",
    "End-to-end duration of get_accessible_content",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5],
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
