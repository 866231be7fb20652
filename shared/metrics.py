"""
Shared metrics configuration for the Janus gateway.
"""

from typing import Dict, Any, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, generate_latest


class MetricsCollector:
    """Centralized metrics collector for a service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # A private registry keeps repeated app construction (tests) from
        # colliding on the global default registry.
        self.registry = registry or CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
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

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors surfaced at the HTTP boundary",
            ["error_kind"],
            registry=self.registry
        )

        # Outbound calls to Aliyun / Bilibili
        self._metrics["upstream_requests_total"] = Counter(
            "upstream_requests_total",
            "Total outbound API calls",
            ["upstream", "action", "outcome"],
            registry=self.registry
        )

        self._metrics["upstream_request_duration_seconds"] = Histogram(
            "upstream_request_duration_seconds",
            "Outbound API call duration in seconds",
            ["upstream", "action"],
            registry=self.registry
        )

        self._metrics["token_verifications_total"] = Counter(
            "token_verifications_total",
            "Total JWT verifications",
            ["source", "status"],
            registry=self.registry
        )

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

    def record_error(self, error_kind: str):
        """Record error metrics."""
        self._metrics["errors_total"].labels(error_kind=error_kind).inc()

    def record_upstream_call(self, upstream: str, action: str, outcome: str, duration: float):
        """Record the outcome and latency of an outbound API call."""
        self._metrics["upstream_requests_total"].labels(
            upstream=upstream,
            action=action,
            outcome=outcome
        ).inc()
        self._metrics["upstream_request_duration_seconds"].labels(
            upstream=upstream,
            action=action
        ).observe(duration)

    def record_token_verification(self, source: str, status: str):
        self._metrics["token_verifications_total"].labels(source=source, status=status).inc()

    def render(self) -> bytes:
        """Render the registry in Prometheus exposition format."""
        return generate_latest(self.registry)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
