"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Issuance metrics
tickets_issued = Counter(
    'tickets_issued_total',
    'Total tickets issued'
)

# Redemption metrics
redemption_attempts = Counter(
    'redemption_attempts_total',
    'Benefit redemption attempts',
    ['result']  # success, invalid_pin, already_redeemed, ticket_closed, not_selected
)

redemption_conflicts = Counter(
    'redemption_conflict_retries_total',
    'Redemption retries caused by concurrent ticket updates'
)

pin_checks = Counter(
    'pin_checks_total',
    'PIN verifications',
    ['result']  # match, mismatch
)

# Scan metrics
scan_results = Counter(
    'scan_results_total',
    'QR scan resolution outcomes',
    ['result']  # resolved, invalid_qr
)

# Rendering metrics
render_latency = Histogram(
    'ticket_render_latency_seconds',
    'Ticket template render latency',
    ['mode'],  # preview, final
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )

# Convenience functions for instrumentation
def record_redemption(result: str):
    """Record redemption attempt outcome."""
    redemption_attempts.labels(result=result).inc()

def record_pin_check(matched: bool):
    pin_checks.labels(result="match" if matched else "mismatch").inc()

def record_scan(resolved: bool):
    scan_results.labels(result="resolved" if resolved else "invalid_qr").inc()

def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
