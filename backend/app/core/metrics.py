"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# Booking lifecycle metrics
enquiry_transitions = Counter(
    'enquiry_transitions_total',
    'Enquiry state transitions',
    ['status']  # PENDING, ACCEPTED, DECLINED, EXPIRED
)

booking_transitions = Counter(
    'booking_transitions_total',
    'Booking state transitions',
    ['status']  # CONFIRMED, COMPLETED, CANCELLED, DISPUTED
)

booking_confirm_latency = Histogram(
    'booking_confirm_latency_seconds',
    'Booking confirmation latency including the payment intent call',
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Payment processor metrics
payment_gateway_calls = Counter(
    'payment_gateway_calls_total',
    'Calls made to the payment processor',
    ['operation', 'result']  # create_payment_intent/create_refund/..., ok/error
)

refunds_processed = Counter(
    'refunds_processed_total',
    'Refund attempts',
    ['status']  # REFUNDED, PENDING, FAILED
)

payouts_processed = Counter(
    'payouts_processed_total',
    'Performer payout attempts',
    ['status']  # paid, failed
)

webhook_events = Counter(
    'webhook_events_total',
    'Stripe webhook events received',
    ['event_type', 'status']  # PROCESSED, FAILED, IGNORED, DUPLICATE
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

# Rate limiting
rate_limit_decisions = Counter(
    'rate_limit_decisions_total',
    'Rate limiter decisions',
    ['result']  # allowed, rejected
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)

redis_circuit_breaker_open = Gauge(
    'redis_circuit_breaker_open',
    'Redis circuit breaker state (1=open, 0=closed)'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_enquiry_transition(status: str):
    enquiry_transitions.labels(status=status).inc()


def record_booking_transition(status: str):
    booking_transitions.labels(status=status).inc()


def record_gateway_call(operation: str, ok: bool):
    payment_gateway_calls.labels(operation=operation, result="ok" if ok else "error").inc()


def record_refund(status: str):
    refunds_processed.labels(status=status).inc()


def record_payout(status: str):
    payouts_processed.labels(status=status).inc()


def record_webhook_event(event_type: str, status: str):
    webhook_events.labels(event_type=event_type, status=status).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()


def record_rate_limit(allowed: bool):
    rate_limit_decisions.labels(result="allowed" if allowed else "rejected").inc()
