"""Strawberry extension for GraphQL operation metrics."""

import logging
from typing import Iterator

from strawberry.extensions import SchemaExtension

from .collector import MetricsCollector

logger = logging.getLogger(__name__)


class MetricsExtension(SchemaExtension):
    """Counts executed operations and those that finished with errors."""

    def __init__(self, metrics_collector: MetricsCollector, **kwargs):
        super().__init__(**kwargs)
        self.metrics = metrics_collector

    def on_execute(self) -> Iterator[None]:
        yield

        result = getattr(self.execution_context, "result", None)
        errors = getattr(result, "errors", None) if result is not None else None
        self.metrics.record_operation(error=bool(errors))

        if errors:
            name = self.execution_context.operation_name or "anonymous"
            logger.debug(f"Operation {name} finished with {len(errors)} error(s)")


def create_metrics_extension(metrics_collector: MetricsCollector) -> type:
    """
    Create a metrics extension class bound to a collector.

    Args:
        metrics_collector: The metrics collector to use

    Returns:
        MetricsExtension subclass strawberry can instantiate per operation
    """
    class ConfiguredMetricsExtension(MetricsExtension):
        def __init__(self, **kwargs):
            super().__init__(metrics_collector, **kwargs)

    return ConfiguredMetricsExtension
