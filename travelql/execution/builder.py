"""Filtered query builder: filters, ordering and pagination to parameterized SQL."""

from typing import Dict, Any, List, Optional, Mapping, Tuple
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlglot import exp

from ..exceptions import FilterError, ValidationError

MIN_SUFFIX = "_min"
MAX_SUFFIX = "_max"

ARRAY_PREDICATES = {
    "postgres": "{column} = ANY({param})",
    "duckdb": "list_contains({param}, {column})",
}


def quote_identifier(name: str) -> str:
    """Render a table or column name as a DuckDB identifier, quoting only when needed."""
    return exp.to_identifier(name).sql(dialect="duckdb")


@dataclass
class Pagination:
    """Optional LIMIT/OFFSET pair."""
    limit: Optional[int] = None
    offset: Optional[int] = None

    def __post_init__(self):
        for name in ("limit", "offset"):
            value = getattr(self, name)
            if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
                raise ValidationError(
                    f"Pagination {name} must be a non-negative integer",
                    field_name=name,
                    expected_type="non-negative int",
                    actual_value=value
                )


@dataclass
class QueryContext:
    """Accumulates predicates and positional parameters while a query is built."""
    where_conditions: List[str] = field(default_factory=list)
    params: List[Any] = field(default_factory=list)

    def bind(self, value: Any) -> str:
        """Append a parameter and return its placeholder."""
        self.params.append(value)
        return f"${len(self.params)}"


class FilteredQueryBuilder:
    """Builds SELECT and COUNT queries for one table from generic filter specs.

    Filter translation, in the order filters are iterated:

    * list value              -> array membership on the mapped column
    * key ending in ``_min``  -> ``column >= $n``
    * key ending in ``_max``  -> ``column <= $n``
    * string value            -> ``column ILIKE $n`` with ``%value%``
    * any other scalar        -> ``column = $n``

    Every value is bound as a positional parameter; numbering runs over
    filters first, then LIMIT, then OFFSET.
    """

    def __init__(
        self,
        table: str,
        filter_columns: Mapping[str, str],
        order_clauses: Optional[Mapping[str, str]] = None,
        default_order: str = "id ASC",
        soft_delete_column: Optional[str] = "hidden",
        columns: str = "*",
        dialect: str = "postgres",
    ):
        """
        Args:
            table: Base table name
            filter_columns: Logical filter name -> column expression
            order_clauses: Order token -> ORDER BY body
            default_order: ORDER BY body used for absent or unknown tokens
            soft_delete_column: Boolean visibility column, or None if the table has none
            columns: Select list
            dialect: 'postgres' or 'duckdb'; controls array membership rendering
        """
        if dialect not in ARRAY_PREDICATES:
            raise ValidationError(
                f"Unsupported dialect '{dialect}'",
                field_name="dialect",
                expected_type=" | ".join(sorted(ARRAY_PREDICATES))
            )
        if not default_order:
            raise ValidationError("A default order is required for deterministic pagination",
                                  field_name="default_order")

        self.table = table
        self.filter_columns = dict(filter_columns)
        self.order_clauses = dict(order_clauses or {})
        self.default_order = default_order
        self.soft_delete_column = soft_delete_column
        self.columns = columns
        self.dialect = dialect

    def build(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        pagination: Optional[Pagination] = None,
        order_by: Optional[str] = None,
    ) -> Tuple[str, List[Any]]:
        """Build the data query."""
        context = self._where(filters)

        parts = [f"SELECT {self.columns} FROM {quote_identifier(self.table)}"]
        if context.where_conditions:
            parts.append("WHERE " + " AND ".join(context.where_conditions))
        parts.append(f"ORDER BY {self.resolve_order(order_by)}")

        if pagination is not None:
            if pagination.limit is not None:
                parts.append(f"LIMIT {context.bind(pagination.limit)}")
            if pagination.offset is not None:
                parts.append(f"OFFSET {context.bind(pagination.offset)}")

        return "\n".join(parts), context.params

    def build_count(self, filters: Optional[Mapping[str, Any]] = None) -> Tuple[str, List[Any]]:
        """Build the COUNT(*) companion of :meth:`build`, numbered independently."""
        context = self._where(filters)

        parts = [f"SELECT COUNT(*) AS total FROM {quote_identifier(self.table)}"]
        if context.where_conditions:
            parts.append("WHERE " + " AND ".join(context.where_conditions))

        return "\n".join(parts), context.params

    def resolve_order(self, order_by: Optional[str]) -> str:
        """ORDER BY body for a token; absent or unknown tokens fall back to the default."""
        if order_by is None:
            return self.default_order
        return self.order_clauses.get(order_by, self.default_order)

    def _where(self, filters: Optional[Mapping[str, Any]]) -> QueryContext:
        context = QueryContext()
        if self.soft_delete_column:
            context.where_conditions.append(f"{quote_identifier(self.soft_delete_column)} = false")

        for key, value in (filters or {}).items():
            name, operator = self._split_key(key, value)
            column = self.filter_columns.get(name)
            if column is None:
                raise FilterError(
                    f"Unknown filter '{key}' for table '{self.table}'",
                    filter_field=key,
                    known_filters=list(self.filter_columns),
                    table_name=self.table
                )
            if value is None:
                continue
            context.where_conditions.append(self._predicate(column, operator, value, context))

        return context

    @staticmethod
    def _split_key(key: str, value: Any) -> Tuple[str, str]:
        if isinstance(value, (list, tuple, set, frozenset)):
            return key, "in"
        if key.endswith(MIN_SUFFIX):
            return key[:-len(MIN_SUFFIX)], "gte"
        if key.endswith(MAX_SUFFIX):
            return key[:-len(MAX_SUFFIX)], "lte"
        if isinstance(value, str):
            return key, "ilike"
        return key, "eq"

    def _predicate(self, column: str, operator: str, value: Any, context: QueryContext) -> str:
        if operator == "in":
            values = list(value)
            if not values:
                return "FALSE"
            return ARRAY_PREDICATES[self.dialect].format(column=column, param=context.bind(values))
        if operator == "gte":
            return f"{column} >= {context.bind(value)}"
        if operator == "lte":
            return f"{column} <= {context.bind(value)}"
        if operator == "ilike":
            return f"{column} ILIKE {context.bind(f'%{value}%')}"
        if not isinstance(value, (int, float, bool, date, datetime)):
            raise ValidationError(
                f"Unsupported value for filter on '{column}'",
                field_name=column,
                expected_type="str, number, bool, date or list",
                actual_value=value
            )
        return f"{column} = {context.bind(value)}"


def build_query(
    table: str,
    filters: Optional[Mapping[str, Any]],
    pagination: Optional[Pagination],
    order_by: Optional[str],
    filter_columns: Mapping[str, str],
    **options
) -> Tuple[str, List[Any]]:
    """One-shot form of :meth:`FilteredQueryBuilder.build`."""
    return FilteredQueryBuilder(table, filter_columns, **options).build(filters, pagination, order_by)
