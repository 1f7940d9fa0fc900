"""
Prometheus Metrics for Dataset Comparison

Tracks comparison runs, reported mismatches, fetched rows and run duration.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

OUTCOME_MATCHED = "matched"
OUTCOME_MISMATCHED = "mismatched"
OUTCOME_ERROR = "error"


class ComparisonMetrics:
    """Prometheus metrics for dataset comparisons."""

    def __init__(
        self,
        namespace: str = "dbcomparer",
        registry: Optional[CollectorRegistry] = None
    ):
        """
        Initialize comparison metrics.

        Args:
            namespace: Metric name prefix
            registry: Prometheus registry (a private one if not provided)
        """
        self.namespace = namespace
        self.registry = registry or CollectorRegistry()

        self.compare_runs_total = Counter(
            f"{namespace}_compare_runs_total",
            "Total number of dataset comparisons by outcome",
            ["outcome"],
            registry=self.registry
        )

        self.mismatches_total = Counter(
            f"{namespace}_mismatches_total",
            "Mismatches reported by comparisons",
            ["table", "kind"],
            registry=self.registry
        )

        self.rows_fetched_total = Counter(
            f"{namespace}_rows_fetched_total",
            "Rows fetched from the database for comparison",
            ["table"],
            registry=self.registry
        )

        self.compare_duration_seconds = Histogram(
            f"{namespace}_compare_duration_seconds",
            "Duration of dataset comparisons in seconds",
            buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30, 60],
            registry=self.registry
        )

        logger.info(f"Initialized ComparisonMetrics with namespace: {namespace}")

    def record_compare(self, outcome: str, duration_seconds: float) -> None:
        """
        Record one finished comparison.

        Args:
            outcome: "matched", "mismatched" or "error"
            duration_seconds: Wall time of the comparison
        """
        self.compare_runs_total.labels(outcome=outcome).inc()
        self.compare_duration_seconds.observe(duration_seconds)

    def record_mismatch(self, table: str, kind: str) -> None:
        self.mismatches_total.labels(table=table, kind=kind).inc()

    def record_rows_fetched(self, table: str, count: int) -> None:
        self.rows_fetched_total.labels(table=table).inc(count)


def start_metrics_server(port: int = 9090, registry: Optional[CollectorRegistry] = None) -> None:
    """
    Expose metrics over HTTP for Prometheus scraping.

    Args:
        port: Port to listen on
        registry: Registry to expose (the default registry if not provided)
    """
    if registry is None:
        start_http_server(port)
    else:
        start_http_server(port, registry=registry)
    logger.info(f"Metrics server started on port {port}")
