"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
ledger_rpc_requests_total = Counter(
    "ledger_rpc_requests_total",
    "Total Solana JSON-RPC requests",
    ["method", "status"],
)

payment_verifications_total = Counter(
    "payment_verifications_total",
    "Payment verification outcomes",
    ["outcome"],  # verified / failure kind / transient
)

workflow_runs_total = Counter(
    "workflow_runs_total",
    "Premium access workflow runs by terminal state",
    ["state"],
)

workflow_triggers_total = Counter(
    "workflow_triggers_total",
    "Premium access workflow runs started",
)

feature_unlocks_total = Counter(
    "feature_unlocks_total",
    "Feature unlock grants",
    ["created"],  # "true" = new grant, "false" = repeat of an existing grant
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
ledger_rpc_request_duration_seconds = Histogram(
    "ledger_rpc_request_duration_seconds",
    "Solana JSON-RPC request duration",
    ["method"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10],
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
