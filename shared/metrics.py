"""
Shared metrics configuration for the live-reload server.
"""

from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry, generate_latest
from typing import Dict, Any, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for a service.

    Every collector owns its own ``CollectorRegistry`` unless one is passed in,
    so several services can live in one process (tests build many).
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "livereload":
            self._setup_livereload_metrics()

    def _setup_livereload_metrics(self):
        """Set up event stream metrics."""
        self._metrics["active_subscribers"] = Gauge(
            "active_subscribers",
            "Number of registered event stream subscribers",
            registry=self.registry
        )

        self._metrics["subscriptions_total"] = Counter(
            "subscriptions_total",
            "Total event stream subscriptions accepted",
            registry=self.registry
        )

        self._metrics["broadcasts_total"] = Counter(
            "broadcasts_total",
            "Total reload broadcasts triggered",
            registry=self.registry
        )

        self._metrics["messages_sent_total"] = Counter(
            "messages_sent_total",
            "Total messages delivered to subscribers",
            registry=self.registry
        )

        self._metrics["delivery_failures_total"] = Counter(
            "delivery_failures_total",
            "Total subscriber writes that failed",
            registry=self.registry
        )

        self._metrics["connection_duration_seconds"] = Histogram(
            "connection_duration_seconds",
            "Event stream connection duration in seconds",
            registry=self.registry
        )

    def export(self) -> bytes:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_broadcast(self, delivered: int, failed: int):
        """Record the outcome of one broadcast."""
        with self._lock:
            self._metrics["broadcasts_total"].inc()
            if delivered:
                self._metrics["messages_sent_total"].inc(delivered)
            if failed:
                self._metrics["delivery_failures_total"].inc(failed)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).observe(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
