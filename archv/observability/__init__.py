"""Observability layer - logging and metrics."""

from archv.observability.logging import setup_logging
from archv.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
