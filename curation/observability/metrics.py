"""
Prometheus metrics for monitoring the curation intake pipeline.

Defines and exposes metrics for:
- Intent classification
- Submission creation and feed routing
- Moderation decisions
- Soft failures (quota, blacklist, authorization, ...)
- Downstream processor failures

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from curation.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the curation pipeline.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_intent("moderation_command")
        metrics.record_soft_failure("quota_exceeded")
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.intents_classified = Counter(
            "curation_intents_classified_total",
            "Total inbound items classified, by intent type",
            ["intent"],
        )

        self.submissions_created = Counter(
            "curation_submissions_created_total",
            "Total new submissions persisted",
        )

        self.feed_links_created = Counter(
            "curation_feed_links_created_total",
            "Total submissions routed into a feed",
            ["feed_id"],
        )

        self.moderation_decisions = Counter(
            "curation_moderation_decisions_total",
            "Total moderation decisions recorded",
            ["action", "origin"],  # origin: command, auto
        )

        self.soft_failures = Counter(
            "curation_soft_failures_total",
            "Expected failures that were logged and skipped",
            ["reason"],
        )

        self.orphaned_commands = Counter(
            "curation_orphaned_commands_total",
            "Pending submit commands whose target was not in the batch",
        )

        self.processor_errors = Counter(
            "curation_processor_errors_total",
            "Downstream processor invocations that failed",
            ["feed_id"],
        )

        self.service_errors = Counter(
            "curation_service_errors_total",
            "Submission/moderation transactions that failed",
            ["operation"],
        )

        self.batch_latency = Histogram(
            "curation_batch_latency_seconds",
            "Time to process one intake batch",
            buckets=LATENCY_BUCKETS,
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_intent(self, intent_type: str) -> None:
        self.intents_classified.labels(intent=intent_type).inc()

    def record_submission_created(self) -> None:
        self.submissions_created.inc()

    def record_feed_link(self, feed_id: str) -> None:
        self.feed_links_created.labels(feed_id=feed_id).inc()

    def record_moderation(self, action: str, origin: str) -> None:
        """
        Record a moderation decision.

        Args:
            action: approve or reject
            origin: command (explicit !approve/!reject) or auto (moderator submission)
        """
        self.moderation_decisions.labels(action=action, origin=origin).inc()

    def record_soft_failure(self, reason: str) -> None:
        self.soft_failures.labels(reason=reason).inc()

    def record_orphaned_command(self, count: int = 1) -> None:
        self.orphaned_commands.inc(count)

    def record_processor_error(self, feed_id: str) -> None:
        self.processor_errors.labels(feed_id=feed_id).inc()

    def record_service_error(self, operation: str) -> None:
        self.service_errors.labels(operation=operation).inc()

    def record_batch_latency(self, latency: float) -> None:
        self.batch_latency.observe(latency)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
