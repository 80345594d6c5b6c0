"""Prometheus metrics for the forward-auth endpoint."""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

VERIFICATIONS = Counter(
    "traefik_tower_verifications_total",
    "Forward-auth verifications by strategy and response status",
    ["auth_type", "status"],
)
VERIFICATION_LATENCY = Histogram(
    "traefik_tower_verification_latency_seconds",
    "Time spent verifying a forwarded request",
    labelnames=("auth_type",),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)


def record_verification(auth_type: str, status_code: int, seconds: float) -> None:
    VERIFICATIONS.labels(auth_type=auth_type, status=str(int(status_code))).inc()
    VERIFICATION_LATENCY.labels(auth_type=auth_type).observe(seconds)


def render_metrics() -> tuple[bytes, str]:
    """Current metrics in the Prometheus text format, with their content type."""
    return generate_latest(), CONTENT_TYPE_LATEST
