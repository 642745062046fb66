"""Async query execution for DuckDB."""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import List, Dict, Any, Optional, Set, Type, Sequence, AsyncIterator
from dataclasses import dataclass
import threading
import time
import logging
import uuid
from functools import wraps

import duckdb

from ..exceptions import TransactionError, PoolExhaustedError, enhance_duckdb_error
from ..metrics import MetricsCollector
from .pool import ConnectionPool

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Result of a database query."""
    rows: List[Dict[str, Any]]
    columns: List[str]
    row_count: int


# Default retryable error types
DEFAULT_RETRYABLE_ERRORS = {
    duckdb.ConnectionException,
    duckdb.IOException,
    PoolExhaustedError,
}


def with_retry(max_retries: int = 3,
               delay: float = 0.1,
               backoff: float = 2.0,
               retryable_errors: Optional[Set[Type[Exception]]] = None):
    """
    Decorator to retry a function on specific errors with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        delay: Initial delay between retries in seconds
        backoff: Multiplier for exponential backoff
        retryable_errors: Set of exception types to retry on
    """
    if retryable_errors is None:
        retryable_errors = DEFAULT_RETRYABLE_ERRORS
    retryable = tuple(retryable_errors)

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retryable as e:
                    if attempt == max_retries:
                        logger.error(f"Query failed after {max_retries + 1} attempts: {e}")
                        raise

                    logger.warning(
                        f"Query failed (attempt {attempt + 1}/{max_retries + 1}): {e}. "
                        f"Retrying in {current_delay:.2f}s..."
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable as e:
                    if attempt == max_retries:
                        logger.error(f"Query failed after {max_retries + 1} attempts: {e}")
                        raise

                    logger.warning(
                        f"Query failed (attempt {attempt + 1}/{max_retries + 1}): {e}. "
                        f"Retrying in {current_delay:.2f}s..."
                    )
                    await asyncio.sleep(current_delay)
                    current_delay *= backoff

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return wrapper

    return decorator


def _fetch(conn: duckdb.DuckDBPyConnection, sql: str, params: Sequence[Any]) -> QueryResult:
    """Run one statement on a connection and fetch rows as dicts."""
    result = conn.execute(sql, list(params)) if params else conn.execute(sql)

    if result.description is None:
        return QueryResult(rows=[], columns=[], row_count=0)

    columns = [desc[0] for desc in result.description]
    rows = [dict(zip(columns, row)) for row in result.fetchall()]
    return QueryResult(rows=rows, columns=columns, row_count=len(rows))


def _rollback(conn: duckdb.DuckDBPyConnection, correlation_id: str) -> None:
    try:
        conn.execute("ROLLBACK")
        logger.warning(f"[{correlation_id}] Transaction rolled back")
    except duckdb.Error as rollback_error:
        logger.error(f"[{correlation_id}] Rollback failed: {rollback_error}")


class Transaction:
    """A single pooled connection inside an explicit BEGIN/COMMIT block."""

    def __init__(self, executor: "QueryExecutor", conn: duckdb.DuckDBPyConnection, correlation_id: str):
        self._executor = executor
        self._conn = conn
        self.correlation_id = correlation_id

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """Execute a statement on the transaction's connection."""
        if self._executor.log_queries:
            logger.debug(f"[{self.correlation_id}] (tx) {sql[:200]}", extra={"params": params})
        try:
            return await self._executor._run(_fetch, self._conn, sql, params or [])
        except Exception as e:
            raise enhance_duckdb_error(e, correlation_id=self.correlation_id, sql=sql, params=params)


class QueryExecutor:
    """Executes SQL queries against DuckDB with async support."""

    def __init__(self,
                 pool: ConnectionPool,
                 max_workers: int = 4,
                 max_retries: int = 3,
                 retry_delay: float = 0.1,
                 retry_backoff: float = 2.0,
                 retryable_errors: Optional[Set[Type[Exception]]] = None,
                 log_queries: bool = False,
                 log_slow_queries: bool = True,
                 slow_query_ms: int = 1000,
                 metrics_collector: Optional[MetricsCollector] = None):
        """
        Initialize the query executor with retry capabilities.

        Args:
            pool: Connection pool shared by every request
            max_workers: Maximum number of worker threads
            max_retries: Maximum number of retry attempts for failed queries
            retry_delay: Initial delay between retries in seconds
            retry_backoff: Multiplier for exponential backoff
            retryable_errors: Set of exception types to retry on
            log_queries: Whether to log all SQL queries at DEBUG level
            log_slow_queries: Whether to log slow queries at WARNING level
            slow_query_ms: Threshold in milliseconds for slow query logging
            metrics_collector: Optional metrics collector instance
        """
        self.pool = pool

        # Retry configuration
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.retry_backoff = retry_backoff
        self.retryable_errors = retryable_errors or DEFAULT_RETRYABLE_ERRORS

        # Logging configuration
        self.log_queries = log_queries
        self.log_slow_queries = log_slow_queries
        self.slow_query_ms = slow_query_ms

        # Performance tracking
        self._query_count = 0
        self._total_query_time = 0.0
        self._lock = threading.Lock()

        self.metrics = metrics_collector
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="travelql-query")
        self._closed = False

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)

    async def execute(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> QueryResult:
        """Execute a parameterized query on a pooled connection."""
        context = context or {}
        correlation_id = context.get("correlation_id") or str(uuid.uuid4())
        params = list(params or [])

        query_metrics = None
        if self.metrics:
            query_metrics = self.metrics.start_query(
                query_id=correlation_id,
                operation_type=context.get("operation", "query"),
                table_name=context.get("table"),
                sql_query=sql,
                context=context
            )

        if self.log_queries:
            logger.debug(
                f"[{correlation_id}] Executing query: {sql[:200]}{'...' if len(sql) > 200 else ''}",
                extra={"correlation_id": correlation_id, "sql": sql, "params": params}
            )

        start_time = time.time()

        try:
            result = await self._run(self._execute_sync, sql, params)
        except Exception as e:
            execution_time = (time.time() - start_time) * 1000
            error = enhance_duckdb_error(
                e,
                correlation_id=correlation_id,
                sql=sql,
                params=params,
                execution_time_ms=execution_time,
                **{k: v for k, v in context.items() if k != "correlation_id"}
            )

            if query_metrics:
                self.metrics.complete_query(query_metrics, error=str(e), error_code=error.error_code)

            logger.error(
                f"[{correlation_id}] Query failed after {execution_time:.2f}ms: {e}",
                extra={
                    "correlation_id": correlation_id,
                    "execution_time_ms": execution_time,
                    "sql": sql,
                    "error_code": error.error_code,
                    "error_type": type(e).__name__
                }
            )
            raise error from e

        execution_time = (time.time() - start_time) * 1000
        with self._lock:
            self._query_count += 1
            self._total_query_time += execution_time

        if query_metrics:
            self.metrics.complete_query(query_metrics, row_count=result.row_count)

        if self.log_slow_queries and execution_time > self.slow_query_ms:
            logger.warning(
                f"[{correlation_id}] Slow query detected: {execution_time:.2f}ms - {sql[:200]}{'...' if len(sql) > 200 else ''}",
                extra={
                    "correlation_id": correlation_id,
                    "execution_time_ms": execution_time,
                    "sql": sql,
                    "row_count": result.row_count
                }
            )
        elif self.log_queries:
            logger.debug(
                f"[{correlation_id}] Query completed in {execution_time:.2f}ms, returned {result.row_count} rows",
                extra={"correlation_id": correlation_id, "execution_time_ms": execution_time}
            )

        return result

    def _execute_sync(self, sql: str, params: List[Any]) -> QueryResult:
        """Execute a SQL query synchronously using the connection pool."""
        @with_retry(
            max_retries=self.max_retries,
            delay=self.retry_delay,
            backoff=self.retry_backoff,
            retryable_errors=self.retryable_errors
        )
        def execute_with_retry():
            conn = self.pool.acquire()
            try:
                return _fetch(conn, sql, params)
            finally:
                self.pool.release(conn)

        return execute_with_retry()

    async def execute_many(
        self,
        queries: List[tuple],
        context: Optional[Dict[str, Any]] = None
    ) -> List[QueryResult]:
        """Execute multiple (sql, params) pairs concurrently, results in input order."""
        return await asyncio.gather(*(self.execute(sql, params, context) for sql, params in queries))

    async def _acquire(self) -> duckdb.DuckDBPyConnection:
        """Check out a connection without blocking the loop, retrying when the pool is exhausted."""
        @with_retry(
            max_retries=self.max_retries,
            delay=self.retry_delay,
            backoff=self.retry_backoff,
            retryable_errors=self.retryable_errors
        )
        async def acquire_with_retry():
            return await self._run(self.pool.acquire)

        return await acquire_with_retry()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Run statements on one connection inside BEGIN/COMMIT.

        Any exception inside the block rolls the transaction back and is
        re-raised unchanged. Cancellation rolls back too, before the
        connection goes back to the pool.
        """
        correlation_id = str(uuid.uuid4())
        try:
            conn = await self._acquire()
        except Exception as e:
            raise enhance_duckdb_error(e, correlation_id=correlation_id)

        try:
            try:
                await self._run(conn.execute, "BEGIN TRANSACTION")
            except duckdb.Error as e:
                raise TransactionError(f"Could not begin transaction: {e}", stage="begin",
                                       correlation_id=correlation_id) from e

            tx = Transaction(self, conn, correlation_id)
            try:
                yield tx
            except Exception:
                await self._run(_rollback, conn, correlation_id)
                raise
            except BaseException:
                # Cancelled or closed: no further awaits are safe here.
                _rollback(conn, correlation_id)
                raise

            try:
                await self._run(conn.execute, "COMMIT")
            except duckdb.Error as e:
                raise TransactionError(f"Could not commit transaction: {e}", stage="commit",
                                       correlation_id=correlation_id) from e
        finally:
            self.pool.release(conn)

    def get_stats(self) -> Dict[str, Any]:
        """Get query execution statistics."""
        with self._lock:
            avg_time = self._total_query_time / self._query_count if self._query_count > 0 else 0
            return {
                "query_count": self._query_count,
                "total_query_time_ms": self._total_query_time,
                "average_query_time_ms": avg_time,
                "connection_pool_size": self.pool.max_connections,
                "max_retries": self.max_retries,
                "slow_query_threshold_ms": self.slow_query_ms
            }

    def reset_stats(self) -> None:
        """Reset query execution statistics."""
        with self._lock:
            self._query_count = 0
            self._total_query_time = 0.0

    def close(self) -> None:
        """Stop the worker threads and drain the connection pool."""
        if self._closed:
            return
        self._closed = True

        stats = self.get_stats()
        if stats["query_count"] > 0:
            logger.info(
                f"QueryExecutor closing. Executed {stats['query_count']} queries, "
                f"average time: {stats['average_query_time_ms']:.2f}ms"
            )

        self.executor.shutdown(wait=True)
        self.pool.close()

    async def shutdown(self) -> None:
        """Await in-flight queries, then close."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.close)
