"""Observability layer - logging and metrics."""

from curation.observability.logging import setup_logging
from curation.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
