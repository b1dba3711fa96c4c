"""
Prometheus metrics for monitoring the alerting and notification core.

Defines and exposes metrics for:
- Threshold evaluations and alerts triggered
- Webhook deliveries and latency
- Email deliveries

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for webhook latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the Lands DB alerting core.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_alert_triggered(severity="critical", metric="cost")
        metrics.record_webhook_delivery("webhook-1", success=True, latency=0.2)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.evaluations = Counter(
            "lands_monitor_threshold_evaluations_total",
            "Total evaluation cycles run against a usage snapshot",
        )

        self.alerts_triggered = Counter(
            "lands_monitor_alerts_triggered_total",
            "Total alert events created",
            ["severity", "metric"],
        )

        self.webhook_deliveries = Counter(
            "lands_monitor_webhook_deliveries_total",
            "Total webhook delivery attempts",
            ["webhook_id", "status"],  # status: success, failed
        )

        self.webhook_latency = Histogram(
            "lands_monitor_webhook_latency_seconds",
            "Time from request start to response or transport error",
            ["webhook_id"],
            buckets=LATENCY_BUCKETS,
        )

        self.email_deliveries = Counter(
            "lands_monitor_email_deliveries_total",
            "Total email delivery attempts",
            ["provider", "status"],
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

    def record_evaluation(self) -> None:
        """Record one evaluation cycle."""
        self.evaluations.inc()

    def record_alert_triggered(self, severity: str, metric: str) -> None:
        """
        Record a created alert event.

        Args:
            severity: Alert severity (critical, warning, info)
            metric: Metric the threshold watches
        """
        self.alerts_triggered.labels(severity=severity, metric=metric).inc()

    def record_webhook_delivery(
        self,
        webhook_id: str,
        success: bool,
        latency: float | None = None,
    ) -> None:
        """
        Record a single webhook attempt.

        Args:
            webhook_id: Channel identifier
            success: Whether the endpoint returned a 2xx status
            latency: Optional elapsed time in seconds
        """
        status = "success" if success else "failed"
        self.webhook_deliveries.labels(webhook_id=webhook_id, status=status).inc()

        if latency is not None:
            self.webhook_latency.labels(webhook_id=webhook_id).observe(latency)

    def record_email_delivery(self, provider: str, success: bool) -> None:
        """Record an email provider call."""
        status = "success" if success else "failed"
        self.email_deliveries.labels(provider=provider, status=status).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
