"""Prometheus metrics for the webhook.

Each MetricsRecorder owns its CollectorRegistry, so several recorders (one
per test, for instance) never collide on metric names.
"""

import logging
from typing import Optional, Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

METRICS_NAMESPACE = "ndots_webhook"


class MetricsSink(Protocol):
    """Interface the admission handler records through."""

    def record_mutation(self, namespace: str, action: str) -> None:
        ...

    def record_error(self, error_type: str) -> None:
        ...

    def observe_request_duration(self, seconds: float) -> None:
        ...


class MetricsRecorder:
    """Records admission outcomes to Prometheus.

    Metrics:
        ndots_webhook_mutations_total{namespace, action}: action is
            "mutated" or "skipped"
        ndots_webhook_errors_total{type}: type is "read", "decode",
            "mutation" or "marshal"
        ndots_webhook_request_duration_seconds: admission request latency
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self.mutations_total = Counter(
            "mutations_total",
            "Total number of pod mutations processed",
            ["namespace", "action"],
            namespace=METRICS_NAMESPACE,
            registry=self.registry,
        )
        self.errors_total = Counter(
            "errors_total",
            "Total number of errors during admission processing",
            ["type"],
            namespace=METRICS_NAMESPACE,
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "request_duration_seconds",
            "Duration of admission requests in seconds",
            namespace=METRICS_NAMESPACE,
            registry=self.registry,
        )

    def record_mutation(self, namespace: str, action: str) -> None:
        self.mutations_total.labels(namespace=namespace, action=action).inc()

    def record_error(self, error_type: str) -> None:
        self.errors_total.labels(type=error_type).inc()

    def observe_request_duration(self, seconds: float) -> None:
        self.request_duration.observe(seconds)


def start_metrics_server(recorder: MetricsRecorder, port: int, addr: str = "0.0.0.0"):
    """Serve ``/metrics`` for the recorder's registry on a background thread.

    Args:
        recorder: Recorder whose registry is exposed
        port: Listen port
        addr: Listen address (default: all interfaces)

    Returns:
        Whatever prometheus_client.start_http_server returns (the server and
        its thread on current releases)
    """
    logger.info("starting metrics server", extra={"port": port})
    return start_http_server(port, addr=addr, registry=recorder.registry)
