"""Reporters for exporting metrics in various formats."""

import json
from abc import ABC, abstractmethod
from datetime import datetime

from .collector import MetricsCollector


class MetricsReporter(ABC):
    """Base class for metrics reporters."""

    def __init__(self, collector: MetricsCollector):
        self.collector = collector

    @abstractmethod
    def report(self) -> str:
        """Generate a metrics report."""


class ConsoleReporter(MetricsReporter):
    """Human-readable report for the CLI."""

    def report(self) -> str:
        stats = self.collector.get_stats()
        summary = stats['summary']

        lines = [
            "=== TravelQL Metrics Report ===",
            f"Generated at: {datetime.now().isoformat()}",
            "",
            "Queries:",
            f"  Total: {summary['total_queries']}",
            f"  Errors: {summary['total_errors']} ({summary['error_rate']:.1%} error rate)",
            f"  GraphQL operations: {summary['graphql_operations']} ({summary['graphql_errors']} with errors)",
        ]

        for code, count in sorted(stats['errors_by_code'].items()):
            lines.append(f"    {code}: {count}")

        if stats['durations_ms']:
            d = stats['durations_ms']
            lines.extend([
                "",
                "Latency:",
                f"  Median: {d['median']:.2f}ms",
                f"  P95: {d['p95']:.2f}ms",
                f"  Max: {d['max']:.2f}ms",
            ])

        if stats['loaders']:
            lines.extend(["", "Loaders:"])
            for name, s in sorted(stats['loaders'].items()):
                lines.append(
                    f"  {name}: {s['batches']} batches, {s['keys']} keys, "
                    f"{s['cache_hits']} cache hits, largest batch {s['max_batch']}"
                )

        return "\n".join(lines)


class JSONReporter(MetricsReporter):
    """Reporter that exports metrics as JSON."""

    def report(self, pretty: bool = True) -> str:
        report = {
            'timestamp': datetime.now().isoformat(),
            'version': '1.0',
            'metrics': self.collector.get_stats()
        }
        return json.dumps(report, indent=2 if pretty else None)


class PrometheusReporter(MetricsReporter):
    """Reporter that exports metrics in Prometheus exposition format."""

    def report(self) -> str:
        stats = self.collector.get_stats()
        summary = stats['summary']
        lines = [
            "# HELP travelql_queries_total Total number of SQL queries executed",
            "# TYPE travelql_queries_total counter",
            f"travelql_queries_total {summary['total_queries']}",
            "",
            "# HELP travelql_query_errors_total SQL query errors by error code",
            "# TYPE travelql_query_errors_total counter",
        ]
        for code, count in sorted(stats['errors_by_code'].items()):
            lines.append(f'travelql_query_errors_total{{code="{code}"}} {count}')
        lines.extend([
            "",
            "# HELP travelql_graphql_operations_total GraphQL operations executed",
            "# TYPE travelql_graphql_operations_total counter",
            f"travelql_graphql_operations_total {summary['graphql_operations']}",
            "",
        ])

        if stats['tables']['queries']:
            lines.extend([
                "# HELP travelql_queries_by_table Queries by table",
                "# TYPE travelql_queries_by_table counter",
            ])
            for table, count in sorted(stats['tables']['queries'].items()):
                lines.append(f'travelql_queries_by_table{{table="{table}"}} {count}')
            lines.append("")

        if stats['loaders']:
            lines.extend([
                "# HELP travelql_loader_batches_total Batches dispatched per loader",
                "# TYPE travelql_loader_batches_total counter",
            ])
            for name, s in sorted(stats['loaders'].items()):
                lines.append(f'travelql_loader_batches_total{{loader="{name}"}} {s["batches"]}')
            lines.extend([
                "",
                "# HELP travelql_loader_cache_hits_total Loads served from the request cache",
                "# TYPE travelql_loader_cache_hits_total counter",
            ])
            for name, s in sorted(stats['loaders'].items()):
                lines.append(f'travelql_loader_cache_hits_total{{loader="{name}"}} {s["cache_hits"]}')
            lines.append("")

        if stats['durations_ms']:
            d = stats['durations_ms']
            lines.extend([
                "# HELP travelql_query_duration_milliseconds Query duration statistics",
                "# TYPE travelql_query_duration_milliseconds summary",
                f'travelql_query_duration_milliseconds{{quantile="0.5"}} {d["median"]}',
                f'travelql_query_duration_milliseconds{{quantile="0.95"}} {d["p95"]}',
                f'travelql_query_duration_milliseconds{{quantile="0.99"}} {d["p99"]}',
                "",
            ])

        return "\n".join(lines)
