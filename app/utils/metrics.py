"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
webhooks_received_total = Counter(
    "webhooks_received_total",
    "Total NOWPayments webhook deliveries",
    ["outcome"],  # issued, updated, rejected
)

tokens_issued_total = Counter(
    "tokens_issued_total",
    "Total access tokens issued",
)

token_activations_total = Counter(
    "token_activations_total",
    "Total activation attempts",
    ["result"],  # ok, expired, conflict, not_found, invalid
)

token_checks_total = Counter(
    "token_checks_total",
    "Total token checks",
    ["result"],  # ok, expired, not_found, invalid
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


class Metrics:
    """Thin helpers so services don't deal with label plumbing."""

    def inc_webhook(self, outcome: str) -> None:
        webhooks_received_total.labels(outcome=outcome).inc()

    def inc_token_issued(self) -> None:
        tokens_issued_total.inc()

    def inc_activation(self, result: str) -> None:
        token_activations_total.labels(result=result).inc()

    def inc_check(self, result: str) -> None:
        token_checks_total.labels(result=result).inc()


metrics = Metrics()
