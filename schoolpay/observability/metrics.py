"""
Observability metrics module.

Operates in two modes:
1. No-op mode: all calls exist for API compatibility but do nothing
2. Active mode: Prometheus counters, exposed on /metrics

Callers never need to check which mode is active.
"""

import typing as t

from flask import Flask, Response


class MetricsManager:
    """Central manager for metrics operations."""

    def __init__(self, enabled: bool = False):
        self.enabled = False
        self.registry = None
        self.webhook_events_total = _DummyMetric()
        self.http_requests_total = _DummyMetric()
        if enabled:
            self.enable()

    def enable(self) -> None:
        """Switch to Prometheus-backed metrics (idempotent)."""
        if self.enabled:
            return

        from prometheus_client import CollectorRegistry, Counter

        self.registry = CollectorRegistry()
        self.webhook_events_total = Counter(
            "webhook_events_total",
            "Payment webhook deliveries by provider and outcome",
            ["provider", "outcome"],
            registry=self.registry,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )
        self.enabled = True

    def record_webhook(self, provider: t.Optional[str], outcome: str) -> None:
        self.webhook_events_total.labels(
            provider=provider or "unknown",
            outcome=outcome,
        ).inc()

    def record_request(self, method: str, endpoint: str, status_code: int) -> None:
        self.http_requests_total.labels(
            method=method.upper(),
            endpoint=endpoint,
            status_code=str(status_code),
        ).inc()


class _DummyMetric:
    """Dummy metric object that mimics Prometheus metric interface."""

    def labels(self, **labels: str) -> "_DummyMetric":
        return self

    def inc(self, amount: float = 1) -> None:
        pass


# Global metrics manager instance, enabled by init_metrics
metrics_manager = MetricsManager()


def init_metrics(app: Flask) -> None:
    """
    Register the metrics endpoint and request counter when METRICS_ENABLED.
    """
    if not app.config.get("METRICS_ENABLED"):
        return

    metrics_manager.enable()

    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

    @app.after_request
    def count_request(response):
        from flask import request

        endpoint = request.url_rule.rule if request.url_rule else "unmatched"
        metrics_manager.record_request(request.method, endpoint, response.status_code)
        return response

    @app.route("/metrics", methods=["GET"])
    def metrics_endpoint():
        return Response(generate_latest(metrics_manager.registry), mimetype=CONTENT_TYPE_LATEST)

    app.logger.info("Prometheus metrics enabled")
