"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_outcomes = Counter(
    'booking_outcomes_total',
    'Booking requests by outcome',
    ['outcome']  # booked, waitlisted, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Time spent inside the booking core per request',
    ['operation'],  # book, cancel
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Cancellation metrics
cancellation_outcomes = Counter(
    'cancellation_outcomes_total',
    'Cancellations by what happened to the freed slot',
    ['outcome']  # released, reassigned, error
)

# Waiting list metrics
waitlist_size = Gauge(
    'waitlist_size',
    'Users currently waiting for a ticket',
    ['event_id']
)

# Store metrics
store_retries = Counter(
    'store_retry_attempts_total',
    'Store transaction retries',
    ['operation']
)

inventory_reconciliations = Counter(
    'inventory_reconciliations_total',
    'Reconciliation runs and the slots they freed or promoted',
    ['result']  # unchanged, repaired
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking(outcome: str):
    """Outcome: booked, waitlisted, error"""
    booking_outcomes.labels(outcome=outcome).inc()


def record_cancellation(outcome: str):
    """Outcome: released, reassigned, error"""
    cancellation_outcomes.labels(outcome=outcome).inc()


def record_waitlist_size(event_id: str, size: int):
    waitlist_size.labels(event_id=event_id).set(size)


def record_store_retry(operation: str):
    store_retries.labels(operation=operation).inc()


def record_reconciliation(repaired: bool):
    inventory_reconciliations.labels(result="repaired" if repaired else "unchanged").inc()


def forget_waitlist_size(event_id: str):
    """Drop the gauge series of a deleted event."""
    try:
        waitlist_size.remove(event_id)
    except KeyError:
        pass  # no series was ever recorded for this event
