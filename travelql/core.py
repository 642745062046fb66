"""Core TravelQL implementation."""

from contextlib import asynccontextmanager
from typing import Dict, Any, Optional, Union
import logging

import duckdb
import strawberry
import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from strawberry.fastapi import GraphQLRouter

from .config import Settings
from .database import create_schema as create_tables
from .execution import ConnectionPool, QueryExecutor
from .metrics import MetricsCollector
from .schema import TravelQLContext, create_schema
from .services import Services

logger = logging.getLogger(__name__)


class TravelQL:
    """Wires pool, executor, services and schema for one travel database."""

    def __init__(self,
                 connection: Union[str, duckdb.DuckDBPyConnection] = ":memory:",
                 max_connections: int = 20,
                 idle_timeout: float = 30.0,
                 connect_timeout: float = 2.0,
                 max_workers: int = 4,
                 max_retries: int = 3,
                 retry_delay: float = 0.1,
                 retry_backoff: float = 2.0,
                 log_queries: bool = False,
                 log_slow_queries: bool = True,
                 slow_query_ms: int = 1000,
                 max_query_depth: Optional[int] = None,
                 max_batch_size: Optional[int] = None,
                 enable_metrics: bool = True,
                 metrics_history_size: int = 10000,
                 init_schema: bool = False):
        """
        Initialize TravelQL over a DuckDB database.

        Args:
            connection: Open DuckDB connection or database path
            max_connections: Pool size
            idle_timeout: Seconds before an idle pooled connection is recycled
            connect_timeout: Seconds to wait for a free pooled connection
            max_workers: Maximum number of worker threads for query execution
            max_retries: Maximum number of retry attempts for failed queries
            retry_delay: Initial delay between retries in seconds
            retry_backoff: Multiplier for exponential backoff
            log_queries: Whether to log all SQL queries at DEBUG level
            log_slow_queries: Whether to log slow queries at WARNING level
            slow_query_ms: Threshold in milliseconds for slow query logging
            max_query_depth: Maximum allowed query depth (None for unlimited)
            max_batch_size: Largest batch a loader sends in one call (None for unlimited)
            enable_metrics: Whether to enable metrics collection
            metrics_history_size: Maximum number of queries to keep in metrics history
            init_schema: Create missing tables before serving
        """
        self.pool = ConnectionPool(
            connection,
            max_connections=max_connections,
            idle_timeout=idle_timeout,
            connect_timeout=connect_timeout
        )
        if init_schema:
            create_tables(self.pool.root)

        self.metrics_collector = None
        if enable_metrics:
            self.metrics_collector = MetricsCollector(
                max_history=metrics_history_size,
                enable_detailed_logging=log_queries
            )

        self.executor = QueryExecutor(
            self.pool,
            max_workers=max_workers,
            max_retries=max_retries,
            retry_delay=retry_delay,
            retry_backoff=retry_backoff,
            log_queries=log_queries,
            log_slow_queries=log_slow_queries,
            slow_query_ms=slow_query_ms,
            metrics_collector=self.metrics_collector
        )
        self.services = Services.create(self.executor)
        self.max_query_depth = max_query_depth
        self.max_batch_size = max_batch_size
        self._schema = create_schema(max_query_depth, self.metrics_collector)

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "TravelQL":
        """Instance configured from :class:`Settings`; keyword overrides win."""
        options = settings.model_dump(exclude={"database", "host", "port", "path", "debug"})
        options.update(overrides)
        connection = options.pop("connection", settings.database)
        return cls(connection, **options)

    def create_context(self) -> TravelQLContext:
        """Fresh request context with empty loader caches."""
        return TravelQLContext.create(self.services, self.metrics_collector, self.max_batch_size)

    def get_schema(self) -> strawberry.Schema:
        """Get the GraphQL schema."""
        return self._schema

    def create_app(self, path: str = "/graphql", debug: bool = False) -> FastAPI:
        """FastAPI app serving GraphQL, health and metrics; shuts the executor down on exit."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            yield
            await self.shutdown()

        app = FastAPI(title="TravelQL GraphQL API", debug=debug, lifespan=lifespan)

        async def get_context() -> TravelQLContext:
            return self.create_context()

        graphql_app = GraphQLRouter(self._schema, path=path, context_getter=get_context)
        app.include_router(graphql_app, prefix="")

        @app.get("/health")
        async def health():
            await self.executor.execute("SELECT 1", context={"operation": "health"})
            return {"status": "healthy"}

        @app.get("/metrics", response_class=PlainTextResponse)
        async def metrics():
            return self.get_metrics_report(format="prometheus")

        return app

    def serve(
        self,
        host: str = "0.0.0.0",
        port: int = 8000,
        path: str = "/graphql",
        debug: bool = False
    ) -> None:
        """Start the GraphQL server."""
        app = self.create_app(path=path, debug=debug)

        logger.info(f"TravelQL server starting at http://{host}:{port}{path}")
        uvicorn.run(app, host=host, port=port, log_level="info" if debug else "warning")

    def get_stats(self) -> Dict[str, Any]:
        """Get query execution statistics."""
        stats = self.executor.get_stats()
        stats["pool_size"] = self.pool.size

        if self.metrics_collector:
            stats['metrics'] = self.metrics_collector.get_stats()

        return stats

    def reset_stats(self) -> None:
        """Reset query execution statistics."""
        self.executor.reset_stats()

        if self.metrics_collector:
            self.metrics_collector.reset_stats()

    def get_metrics_report(self, format: str = 'console') -> str:
        """Get a formatted metrics report.

        Args:
            format: Report format ('console', 'json', 'prometheus')

        Returns:
            Formatted metrics report string
        """
        if not self.metrics_collector:
            return "Metrics collection is disabled"

        from .metrics import ConsoleReporter, JSONReporter, PrometheusReporter

        reporters = {
            'console': ConsoleReporter,
            'json': JSONReporter,
            'prometheus': PrometheusReporter
        }

        reporter_class = reporters.get(format, ConsoleReporter)
        reporter = reporter_class(self.metrics_collector)
        return reporter.report()

    async def shutdown(self) -> None:
        """Wait for running queries, then release threads and connections."""
        await self.executor.shutdown()

    def close(self) -> None:
        self.executor.close()
