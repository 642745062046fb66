"""Metrics collection for TravelQL queries and loaders."""

import time
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from datetime import datetime
import statistics


@dataclass
class QueryMetrics:
    """Metrics for a single query execution."""

    query_id: str
    operation_type: str
    table_name: Optional[str]
    start_time: float
    end_time: Optional[float] = None
    duration_ms: Optional[float] = None
    sql_query: Optional[str] = None
    row_count: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def complete(self, row_count: Optional[int] = None, error: Optional[str] = None,
                 error_code: Optional[str] = None):
        """Mark query as complete and calculate duration."""
        self.end_time = time.time()
        self.duration_ms = (self.end_time - self.start_time) * 1000
        self.row_count = row_count
        self.error = error
        self.error_code = error_code


@dataclass
class LoaderMetrics:
    """Counters for one named batch loader, summed across requests."""

    batches: int = 0
    keys: int = 0
    cache_hits: int = 0
    failures: int = 0
    max_batch: int = 0


class MetricsCollector:
    """Collects and aggregates metrics for SQL queries and batch loaders."""

    def __init__(self,
                 max_history: int = 10000,
                 enable_detailed_logging: bool = False):
        """
        Initialize metrics collector.

        Args:
            max_history: Maximum number of queries to keep in history
            enable_detailed_logging: Whether to store SQL text in history
        """
        self.max_history = max_history
        self.enable_detailed_logging = enable_detailed_logging
        self._queries: List[QueryMetrics] = []
        self._lock = threading.Lock()

        self._total_queries = 0
        self._total_errors = 0
        self._errors_by_code: Dict[str, int] = {}
        self._table_queries: Dict[str, int] = {}
        self._table_errors: Dict[str, int] = {}
        self._operation_counts: Dict[str, int] = {}
        self._loaders: Dict[str, LoaderMetrics] = {}
        self._graphql_operations = 0
        self._graphql_errors = 0

    def start_query(self,
                    query_id: str,
                    operation_type: str,
                    table_name: Optional[str] = None,
                    sql_query: Optional[str] = None,
                    context: Optional[Dict[str, Any]] = None) -> QueryMetrics:
        """Start tracking a new query."""
        metrics = QueryMetrics(
            query_id=query_id,
            operation_type=operation_type,
            table_name=table_name,
            start_time=time.time(),
            sql_query=sql_query if self.enable_detailed_logging else None,
            context=context or {}
        )

        with self._lock:
            self._queries.append(metrics)
            self._total_queries += 1
            self._operation_counts[operation_type] = self._operation_counts.get(operation_type, 0) + 1

            if table_name:
                self._table_queries[table_name] = self._table_queries.get(table_name, 0) + 1

            if len(self._queries) > self.max_history:
                self._queries = self._queries[-self.max_history:]

        return metrics

    def complete_query(self,
                       metrics: QueryMetrics,
                       row_count: Optional[int] = None,
                       error: Optional[str] = None,
                       error_code: Optional[str] = None):
        """Complete tracking for a query."""
        metrics.complete(row_count=row_count, error=error, error_code=error_code)

        if not error:
            return

        with self._lock:
            self._total_errors += 1
            code = error_code or "UNKNOWN"
            self._errors_by_code[code] = self._errors_by_code.get(code, 0) + 1
            if metrics.table_name:
                self._table_errors[metrics.table_name] = self._table_errors.get(metrics.table_name, 0) + 1

    def record_batch(self, loader: str, size: int, failed: bool = False) -> None:
        """Record one dispatched loader batch."""
        with self._lock:
            stats = self._loaders.setdefault(loader, LoaderMetrics())
            stats.batches += 1
            stats.keys += size
            stats.max_batch = max(stats.max_batch, size)
            if failed:
                stats.failures += 1

    def record_cache_hit(self, loader: str) -> None:
        """Record a load served from a loader's request cache."""
        with self._lock:
            self._loaders.setdefault(loader, LoaderMetrics()).cache_hits += 1

    def record_operation(self, error: bool = False) -> None:
        """Record one executed GraphQL operation."""
        with self._lock:
            self._graphql_operations += 1
            if error:
                self._graphql_errors += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get aggregated statistics."""
        with self._lock:
            completed = [q for q in self._queries if q.duration_ms is not None]
            failed = [q for q in completed if q.error is not None]
            successful = [q for q in completed if q.error is None]

            durations = [q.duration_ms for q in successful]
            duration_stats = {}
            if durations:
                duration_stats = {
                    'min': min(durations),
                    'max': max(durations),
                    'mean': statistics.mean(durations),
                    'median': statistics.median(durations),
                    'p95': statistics.quantiles(durations, n=20)[18] if len(durations) > 1 else durations[0],
                    'p99': statistics.quantiles(durations, n=100)[98] if len(durations) > 1 else durations[0]
                }

            loader_hits = sum(s.cache_hits for s in self._loaders.values())
            loader_keys = sum(s.keys for s in self._loaders.values())

            return {
                'summary': {
                    'total_queries': self._total_queries,
                    'total_errors': self._total_errors,
                    'error_rate': self._total_errors / self._total_queries if self._total_queries > 0 else 0,
                    'graphql_operations': self._graphql_operations,
                    'graphql_errors': self._graphql_errors,
                },
                'errors_by_code': dict(self._errors_by_code),
                'operations': dict(self._operation_counts),
                'tables': {
                    'queries': dict(self._table_queries),
                    'errors': dict(self._table_errors)
                },
                'durations_ms': duration_stats,
                'loaders': {
                    name: {
                        'batches': s.batches,
                        'keys': s.keys,
                        'cache_hits': s.cache_hits,
                        'failures': s.failures,
                        'max_batch': s.max_batch,
                    }
                    for name, s in self._loaders.items()
                },
                'loader_cache_hit_rate': loader_hits / (loader_hits + loader_keys) if loader_hits + loader_keys else 0,
                'recent_errors': [
                    {
                        'query_id': q.query_id,
                        'table': q.table_name,
                        'error': q.error,
                        'error_code': q.error_code,
                        'timestamp': datetime.fromtimestamp(q.start_time).isoformat()
                    }
                    for q in failed[-10:]
                ],
            }

    def get_query_history(self,
                          limit: int = 100,
                          table_name: Optional[str] = None,
                          include_errors: bool = True) -> List[Dict[str, Any]]:
        """Get recent query history with optional filters."""
        with self._lock:
            queries = self._queries[-limit:]

            if table_name:
                queries = [q for q in queries if q.table_name == table_name]
            if not include_errors:
                queries = [q for q in queries if q.error is None]

            return [
                {
                    'query_id': q.query_id,
                    'operation': q.operation_type,
                    'table': q.table_name,
                    'duration_ms': q.duration_ms,
                    'row_count': q.row_count,
                    'error': q.error,
                    'timestamp': datetime.fromtimestamp(q.start_time).isoformat(),
                    'sql': q.sql_query,
                }
                for q in queries
            ]

    def reset_stats(self):
        """Reset all statistics."""
        with self._lock:
            self._queries.clear()
            self._total_queries = 0
            self._total_errors = 0
            self._errors_by_code.clear()
            self._table_queries.clear()
            self._table_errors.clear()
            self._operation_counts.clear()
            self._loaders.clear()
            self._graphql_operations = 0
            self._graphql_errors = 0
