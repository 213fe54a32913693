"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # created, invalid, not_found, conflict, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency',
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Seat reservation metrics
seat_reservations = Counter(
    'seat_reservations_total',
    'Atomic seat reservation attempts',
    ['result']  # reserved, rejected
)

seat_releases = Counter(
    'seat_releases_total',
    'Compensating seat releases',
    ['result']  # released, failed
)

# Booking writer metrics
booking_writes = Counter(
    'booking_writes_total',
    'Booking rows written, by strategy',
    ['strategy']  # procedure, insert
)

booking_rollbacks = Counter(
    'booking_rollbacks_total',
    'Bookings torn down after a persistence failure',
    ['stage']  # booking, participants, unexpected
)

# Fulfillment metrics
fulfillment_failures = Counter(
    'fulfillment_failures_total',
    'Best-effort fulfillment steps that failed',
    ['step']  # agreement, agreement_record, email, payment
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


def record_booking_attempt(status: str):
    """Record booking attempt. Status: created, invalid, not_found, conflict, error"""
    booking_attempts.labels(status=status).inc()


def record_reservation(reserved: bool):
    result = "reserved" if reserved else "rejected"
    seat_reservations.labels(result=result).inc()


def record_release(released: bool):
    result = "released" if released else "failed"
    seat_releases.labels(result=result).inc()


def record_fulfillment_failure(step: str):
    fulfillment_failures.labels(step=step).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
