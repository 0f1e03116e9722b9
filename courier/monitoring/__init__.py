"""
Monitoring for Courier.
"""

from courier.monitoring.metrics import (
    MetricsRegistry,
    RequestOutcome,
    get_metrics_registry,
    initialize_metrics_registry,
)

__all__ = [
    "MetricsRegistry",
    "RequestOutcome",
    "get_metrics_registry",
    "initialize_metrics_registry",
]
