"""
Monitoring for dataset comparisons.

Usage:
    from dbcomparer.monitoring import ComparisonMetrics

    metrics = ComparisonMetrics()
    comparer = DBComparer(psycopg2.connect, dsn, metrics=metrics)
"""

from dbcomparer.monitoring.metrics import ComparisonMetrics, start_metrics_server

__all__ = [
    "ComparisonMetrics",
    "start_metrics_server",
]
