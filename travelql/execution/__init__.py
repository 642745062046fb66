"""Query building and execution."""

from .builder import FilteredQueryBuilder, Pagination, QueryContext, build_query, quote_identifier
from .pool import ConnectionPool
from .executor import QueryExecutor, QueryResult, Transaction

__all__ = [
    "FilteredQueryBuilder",
    "Pagination",
    "QueryContext",
    "build_query",
    "quote_identifier",
    "ConnectionPool",
    "QueryExecutor",
    "QueryResult",
    "Transaction",
]
