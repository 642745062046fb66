"""Metrics and monitoring for TravelQL."""

from .collector import MetricsCollector, QueryMetrics, LoaderMetrics
from .middleware import MetricsExtension, create_metrics_extension
from .reporters import ConsoleReporter, PrometheusReporter, JSONReporter

__all__ = [
    'MetricsCollector',
    'QueryMetrics',
    'LoaderMetrics',
    'MetricsExtension',
    'create_metrics_extension',
    'ConsoleReporter',
    'PrometheusReporter',
    'JSONReporter',
]
