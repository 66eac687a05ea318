"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Registration metrics
registration_attempts = Counter(
    'registration_attempts_total',
    'Total registration attempts',
    ['result']  # admitted, waitlisted, rejected
)

registration_rejections = Counter(
    'registration_rejections_total',
    'Registration rejections by reason',
    ['reason']
)

registration_latency = Histogram(
    'registration_latency_seconds',
    'Registration request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

registration_races = Counter(
    'registration_race_reevaluations_total',
    'Attempts that lost the conditional seat update and were re-evaluated'
)

registration_lock_timeouts = Counter(
    'registration_lock_timeouts_total',
    'Registration locks not acquired in time; the attempt proceeded unlocked',
    ['strategy']
)

waitlist_promotions = Counter(
    'waitlist_promotions_total',
    'Waitlisted registrations promoted after a cancellation'
)

# Lifecycle metrics
event_transitions = Counter(
    'event_transitions_total',
    'Event lifecycle transitions',
    ['to_status', 'override']
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint body."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_registration(result: str, reason: str = None):
    """Record a registration outcome. Result: admitted, waitlisted, rejected"""
    registration_attempts.labels(result=result).inc()
    if reason:
        registration_rejections.labels(reason=reason).inc()


def record_transition(to_status: str, override: bool = False):
    event_transitions.labels(to_status=to_status, override=str(override).lower()).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
