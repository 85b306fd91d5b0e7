"""
Prometheus metrics for the calendar engine, exposed at /metrics.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Materialization metrics
instances_materialized = Counter(
    'instances_materialized_total',
    'Candidate occurrence dates processed by materialization',
    ['result']  # created, skipped
)

materialize_latency = Histogram(
    'materialize_latency_seconds',
    'Materialization call latency',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Lineup metrics
lineup_replacements = Counter(
    'lineup_replacements_total',
    'Full lineup replacements',
    ['target']  # event, instance
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_materialization(created: int, skipped: int):
    """Record per-date outcomes of one materialization call."""
    if created:
        instances_materialized.labels(result="created").inc(created)
    if skipped:
        instances_materialized.labels(result="skipped").inc(skipped)


def record_lineup_replacement(target: str):
    lineup_replacements.labels(target=target).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
