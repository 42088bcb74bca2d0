"""
Prometheus metrics for the aggregation pipeline.

Defines and exposes metrics for:
- Articles fetched per source
- Adapter errors and fetch latency
- Fallback dataset usage
- Articles stored/skipped by the sync job

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from archv.config.settings import get_settings

logger = logging.getLogger(__name__)

# Upstream fetches are slower than in-process work
LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0)


class MetricsCollector:
    """
    Prometheus metrics collector for archv.

    Usage:
        metrics = get_metrics()
        metrics.record_fetch("nytimes", count=20, latency=0.8)
        metrics.record_error("newsapi", "UpstreamError")
    """

    def __init__(self):
        self.articles_fetched = Counter(
            "archv_articles_fetched_total",
            "Articles fetched and normalized per source",
            ["source"],
        )

        self.adapter_errors = Counter(
            "archv_adapter_errors_total",
            "Source adapter failures",
            ["source", "error_type"],
        )

        self.fetch_latency = Histogram(
            "archv_fetch_latency_seconds",
            "Time to fetch and normalize one source",
            ["source"],
            buckets=LATENCY_BUCKETS,
        )

        self.fallback_used = Counter(
            "archv_fallback_used_total",
            "Times the placeholder dataset was served",
            ["scope"],  # all, category
        )

        self.articles_stored = Counter(
            "archv_articles_stored_total",
            "Articles persisted by the sync job",
            ["source"],
        )

        self.articles_skipped = Counter(
            "archv_articles_skipped_total",
            "Articles skipped by the sync job because the slug exists",
            ["source"],
        )

        self.store_errors = Counter(
            "archv_store_errors_total",
            "Backing store failures",
            ["operation"],
        )

        self.adapter_health = Gauge(
            "archv_adapter_health",
            "Adapter health status (1=healthy, 0=unhealthy)",
            ["source"],
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """Start the Prometheus HTTP endpoint (default port from settings)."""
        port = port or get_settings().metrics_port
        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    def record_fetch(self, source: str, count: int, latency: float | None = None) -> None:
        self.articles_fetched.labels(source=source).inc(count)
        if latency is not None:
            self.fetch_latency.labels(source=source).observe(latency)

    def record_error(self, source: str, error_type: str) -> None:
        self.adapter_errors.labels(source=source, error_type=error_type).inc()

    def record_fallback(self, scope: str) -> None:
        self.fallback_used.labels(scope=scope).inc()

    def record_sync(self, source: str, stored: int, skipped: int) -> None:
        """
        Record the outcome of persisting one source's batch.

        Args:
            source: Adapter source key
            stored: Newly created articles
            skipped: Articles whose slug already existed
        """
        if stored:
            self.articles_stored.labels(source=source).inc(stored)
        if skipped:
            self.articles_skipped.labels(source=source).inc(skipped)

    def record_store_error(self, operation: str) -> None:
        self.store_errors.labels(operation=operation).inc()

    def set_adapter_health(self, source: str, healthy: bool) -> None:
        self.adapter_health.labels(source=source).set(1 if healthy else 0)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
