"""Custom exceptions for TravelQL with enhanced error messages."""

from typing import Optional, Dict, Any, List
import re
import uuid

import duckdb


class TravelQLError(Exception):
    """Base exception for all TravelQL errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        correlation_id: Optional[str] = None
    ):
        """
        Initialize TravelQL error with rich context.

        Args:
            message: The error message
            error_code: Optional error code for categorization
            context: Additional context about the error
            suggestions: List of suggestions to fix the error
            correlation_id: ID to track this error across logs
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "TRAVELQL_ERROR"
        self.context = context or {}
        self.suggestions = suggestions or []
        self.correlation_id = correlation_id or str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
            "suggestions": self.suggestions,
            "correlation_id": self.correlation_id
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]

        if self.context:
            parts.append(f"Context: {self.context}")

        if self.suggestions:
            parts.append("Suggestions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                parts.append(f"  {i}. {suggestion}")

        parts.append(f"Correlation ID: {self.correlation_id}")

        return "\n".join(parts)


class SchemaError(TravelQLError):
    """Error in the relational schema (missing table or column)."""

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        column_name: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if table_name:
            context["table"] = table_name
        if column_name:
            context["column"] = column_name

        super().__init__(
            message=message,
            error_code="SCHEMA_ERROR",
            context=context,
            **kwargs
        )


class QueryError(TravelQLError):
    """Error during query execution."""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        table_name: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if query:
            context["query"] = query[:200] + "..." if len(query) > 200 else query
        if table_name:
            context["table"] = table_name
        if operation:
            context["operation"] = operation

        error_code = kwargs.pop("error_code", None) or "QUERY_ERROR"
        super().__init__(
            message=message,
            error_code=error_code,
            context=context,
            **kwargs
        )


class ConnectionError(TravelQLError):
    """Database connection error."""

    def __init__(
        self,
        message: str,
        database_path: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if database_path:
            context["database"] = database_path

        suggestions = kwargs.pop("suggestions", [])
        if not suggestions:
            suggestions = [
                "Check if the database file exists and is accessible",
                "Verify you have the necessary permissions",
                "Ensure the database is not locked by another process"
            ]

        error_code = kwargs.pop("error_code", None) or "CONNECTION_ERROR"
        super().__init__(
            message=message,
            error_code=error_code,
            context=context,
            suggestions=suggestions,
            **kwargs
        )


class PoolExhaustedError(ConnectionError):
    """No pooled connection became free within the connect timeout."""

    def __init__(
        self,
        message: str = "Timed out waiting for a database connection",
        max_connections: Optional[int] = None,
        timeout: Optional[float] = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if max_connections is not None:
            context["max_connections"] = max_connections
        if timeout is not None:
            context["timeout_s"] = timeout

        super().__init__(
            message=message,
            error_code="POOL_EXHAUSTED",
            context=context,
            suggestions=[
                "Increase max_connections for the connection pool",
                "Raise connect_timeout if queries are legitimately slow",
                "Look for long-running transactions holding connections"
            ],
            **kwargs
        )


class ValidationError(TravelQLError):
    """Invalid argument passed to a query operation."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        expected_type: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if field_name:
            context["field"] = field_name
        if expected_type:
            context["expected_type"] = expected_type
        if actual_value is not None:
            context["actual_value"] = str(actual_value)
            context["actual_type"] = type(actual_value).__name__

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            context=context,
            **kwargs
        )


class FilterError(QueryError):
    """Filter name with no column mapping; raised while building, before execution."""

    def __init__(
        self,
        message: str,
        filter_field: Optional[str] = None,
        known_filters: Optional[List[str]] = None,
        **kwargs
    ):
        context = kwargs.pop("context", {})
        if filter_field:
            context["filter_field"] = filter_field
        if known_filters is not None:
            context["known_filters"] = sorted(known_filters)

        kwargs.pop("error_code", None)

        super().__init__(
            message=message,
            context=context,
            error_code="FILTER_ERROR",
            **kwargs
        )


class NotFoundError(TravelQLError):
    """A requested key yielded no row."""

    def __init__(self, message: str, entity: Optional[str] = None, key: Any = None, **kwargs):
        context = kwargs.pop("context", {})
        if entity:
            context["entity"] = entity
        if key is not None:
            context["key"] = key

        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            context=context,
            **kwargs
        )
        self.entity = entity
        self.key = key


class BatchLoadError(TravelQLError):
    """The batch function of a loader failed for a whole batch."""

    def __init__(self, message: str, loader: Optional[str] = None, keys: Optional[List[Any]] = None, **kwargs):
        context = kwargs.pop("context", {})
        if loader:
            context["loader"] = loader
        if keys is not None:
            context["batch_size"] = len(keys)

        super().__init__(
            message=message,
            error_code="BATCH_LOAD_ERROR",
            context=context,
            **kwargs
        )


class TransactionError(TravelQLError):
    """BEGIN, COMMIT or ROLLBACK itself failed."""

    def __init__(self, message: str, stage: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if stage:
            context["stage"] = stage

        super().__init__(
            message=message,
            error_code="TRANSACTION_ERROR",
            context=context,
            **kwargs
        )


def enhance_duckdb_error(original_error: Exception, **context) -> TravelQLError:
    """
    Transform a DuckDB exception into a TravelQL error.

    Errors that already are TravelQL errors pass through unchanged.

    Args:
        original_error: The original exception
        **context: Additional context to include

    Returns:
        TravelQL error with helpful information
    """
    if isinstance(original_error, TravelQLError):
        return original_error

    error_message = str(original_error)
    error_type = type(original_error).__name__
    correlation_id = context.pop("correlation_id", None)

    if isinstance(original_error, (duckdb.ConnectionException, duckdb.IOException)):
        return ConnectionError(
            "Database connection failed",
            context={"original_error": error_message, **context},
            correlation_id=correlation_id
        )

    if "Referenced column" in error_message or "Could not find column" in error_message:
        match = re.search(r"column\s*['\"]?(\w+)['\"]?", error_message, re.IGNORECASE)
        column_name = match.group(1) if match else "unknown"
        table_name = context.get("table", "unknown")

        return SchemaError(
            f"Column '{column_name}' not found",
            table_name=table_name,
            column_name=column_name,
            suggestions=[
                "Check the filter-to-column map of the service",
                "Run 'travelql init-db' to create the expected schema"
            ],
            correlation_id=correlation_id
        )

    if "Catalog Error" in error_message:
        match = re.search(r"Table\s*(?:with\s*name\s*)?['\"]?(\w+)['\"]?", error_message, re.IGNORECASE)
        table_name = match.group(1) if match else "unknown"

        return SchemaError(
            f"Table '{table_name}' not found",
            table_name=table_name,
            suggestions=[
                "Run 'travelql init-db' to create the travel schema",
                "Use 'travelql tables' to see available tables"
            ],
            correlation_id=correlation_id
        )

    if "Conversion Error" in error_message or "Could not convert" in error_message:
        return QueryError(
            "Type mismatch in query parameter",
            suggestions=[
                "Pass numbers for range filters and id lists",
                "Use ISO-8601 strings for dates"
            ],
            context={"original_error": error_message, **context},
            correlation_id=correlation_id
        )

    if "Parser Error" in error_message:
        return QueryError(
            "SQL syntax error in generated query",
            suggestions=[
                "Check the order clauses and column expressions of the service"
            ],
            context={"original_error": error_message, **context},
            correlation_id=correlation_id
        )

    return QueryError(
        f"Database error: {error_message}",
        context={"error_type": error_type, **context},
        correlation_id=correlation_id
    )
