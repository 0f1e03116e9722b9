"""
Prometheus metrics for Courier.

This module provides metrics for monitoring outbound requests:
- Request outcomes (succeeded, transport error, decode error, cancelled)
- Request duration
- Requests in flight
- Authentication failures
- Requests dropped while offline
"""

from enum import Enum
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from courier.logging_config import get_logger

logger = get_logger(__name__)


class RequestOutcome(str, Enum):
    """Request outcomes for metrics."""
    SUCCEEDED = "succeeded"
    TRANSPORT_ERROR = "transport_error"
    DECODE_ERROR = "decode_error"
    CANCELLED = "cancelled"


class MetricsRegistry:
    """
    Central registry for all Prometheus metrics.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics registry.

        Args:
            registry: Optional Prometheus CollectorRegistry (creates new if not provided)
        """
        self.registry = registry or CollectorRegistry()

        self.requests_total = Counter(
            'courier_requests_total',
            'Total number of dispatched requests by outcome',
            ['server_name', 'outcome'],
            registry=self.registry
        )

        self.request_duration_seconds = Histogram(
            'courier_request_duration_seconds',
            'Time from dispatch to completion in seconds',
            ['server_name'],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self.registry
        )

        self.requests_in_flight = Gauge(
            'courier_requests_in_flight',
            'Number of requests currently in flight',
            registry=self.registry
        )

        self.auth_failures_total = Counter(
            'courier_auth_failures_total',
            'Total number of authentication failures that invalidated the session',
            ['error_code'],
            registry=self.registry
        )

        self.requests_dropped_total = Counter(
            'courier_requests_dropped_total',
            'Total number of requests not sent because the network was unreachable',
            ['server_name'],
            registry=self.registry
        )

        logger.info("Metrics registry initialized")

    def record_dispatched(self) -> None:
        self.requests_in_flight.inc()

    def record_completed(self, server_name: str, outcome: RequestOutcome, duration_seconds: float) -> None:
        self.requests_in_flight.dec()
        self.requests_total.labels(server_name=server_name, outcome=outcome.value).inc()
        self.request_duration_seconds.labels(server_name=server_name).observe(duration_seconds)

    def record_auth_failure(self, error_code: str) -> None:
        self.auth_failures_total.labels(error_code=error_code).inc()

    def record_dropped(self, server_name: str) -> None:
        self.requests_dropped_total.labels(server_name=server_name).inc()

    def generate_metrics(self) -> bytes:
        """
        Generate Prometheus metrics in text format.

        Returns:
            Metrics in Prometheus text format
        """
        return generate_latest(self.registry)


# Global metrics registry instance
_metrics_registry: Optional[MetricsRegistry] = None


def get_metrics_registry() -> MetricsRegistry:
    """
    Get global metrics registry instance.

    Returns:
        MetricsRegistry singleton instance

    Raises:
        RuntimeError: If metrics registry not initialized
    """
    global _metrics_registry
    if _metrics_registry is None:
        raise RuntimeError(
            "Metrics registry not initialized. "
            "Call initialize_metrics_registry() first."
        )
    return _metrics_registry


def initialize_metrics_registry(registry: Optional[CollectorRegistry] = None) -> MetricsRegistry:
    """
    Initialize global metrics registry.

    Args:
        registry: Optional Prometheus CollectorRegistry

    Returns:
        Initialized MetricsRegistry instance
    """
    global _metrics_registry
    _metrics_registry = MetricsRegistry(registry)
    return _metrics_registry
