"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, CONTENT_TYPE_LATEST, generate_latest
from fastapi import Response

# Admission metrics
admission_decisions = Counter(
    'admission_decisions_total',
    'Admission decisions per outcome',
    ['outcome']  # confirmed, waitlisted, duplicate, not_found, invalid, contention, error
)

admission_latency = Histogram(
    'admission_unit_latency_seconds',
    'Time spent inside one atomic admission unit',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Slot lock metrics
slot_lock_wait = Histogram(
    'slot_lock_wait_seconds',
    'Time waited to acquire a slot lock',
    ['backend'],
    buckets=[0.0001, 0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0]
)

slot_lock_timeouts = Counter(
    'slot_lock_timeouts_total',
    'Slot lock acquisitions that exceeded the wait bound',
    ['backend']
)

# Lifecycle metrics
cancellations = Counter(
    'booking_cancellations_total',
    'Cancelled bookings per previous status',
    ['previous_status']  # confirmed, waitlisted
)

promotions = Counter(
    'waitlist_promotions_total',
    'Waitlisted bookings promoted to confirmed'
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_admission(outcome: str):
    """Record an admission decision (or the reason it was refused)."""
    admission_decisions.labels(outcome=outcome).inc()


def record_lock_wait(backend: str, seconds: float, acquired: bool):
    slot_lock_wait.labels(backend=backend).observe(seconds)
    if not acquired:
        slot_lock_timeouts.labels(backend=backend).inc()


def record_cancellation(previous_status: str, promoted: bool):
    cancellations.labels(previous_status=previous_status).inc()
    if promoted:
        promotions.inc()
