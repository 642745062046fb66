"""Generic entity service over one table."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, Type, TypeVar

from ..execution import FilteredQueryBuilder, Pagination, QueryExecutor, quote_identifier
from ..execution.executor import Transaction
from ..models import Entity
from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

NAME_ORDER = "name ASC, id ASC"

# Order tokens shared by every named entity.
NAMED_ORDER_CLAUSES = {
    "NAME_ASC": "name ASC, id ASC",
    "NAME_DESC": "name DESC, id DESC",
    "CREATED_AT_ASC": "created_at ASC, id ASC",
    "CREATED_AT_DESC": "created_at DESC, id DESC",
}


@dataclass
class Page(Generic[E]):
    """One page of entities plus the unpaginated total."""
    items: List[E]
    total_count: int
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total_count


class BaseService(Generic[E]):
    """CRUD and lookup operations for one entity kind.

    Subclasses set ``table``, ``entity`` and ``filter_columns``; all list
    queries go through a :class:`FilteredQueryBuilder` bound to them.
    """

    table: str
    entity: Type[E]
    filter_columns: Mapping[str, str] = {"search": "name", "ids": "id"}
    order_clauses: Mapping[str, str] = NAMED_ORDER_CLAUSES
    default_order: str = NAME_ORDER
    soft_delete_column: Optional[str] = "hidden"
    writable_columns: Sequence[str] = ()

    def __init__(self, executor: QueryExecutor):
        self.executor = executor
        self.builder = FilteredQueryBuilder(
            self.table,
            self.filter_columns,
            order_clauses=self.order_clauses,
            default_order=self.default_order,
            soft_delete_column=self.soft_delete_column,
            dialect="duckdb",
        )

    @property
    def kind(self) -> str:
        return self.entity.__name__.lower()

    def to_entity(self, row: Dict[str, Any]) -> E:
        return self.entity.from_row(row)

    async def _query(self, sql: str, params: Optional[Sequence[Any]] = None, operation: str = "query",
                     tx: Optional[Transaction] = None):
        if tx is not None:
            return await tx.execute(sql, params)
        return await self.executor.execute(sql, params, {"table": self.table, "operation": operation})

    def _visible(self, alias: str = "") -> str:
        if not self.soft_delete_column:
            return "TRUE"
        prefix = f"{alias}." if alias else ""
        return f"{prefix}{self.soft_delete_column} = false"

    async def find_by_id(self, id: int) -> Optional[E]:
        result = await self._query(
            f"SELECT * FROM {self.table} WHERE id = $1 AND {self._visible()}",
            [id],
            operation="single"
        )
        return self.to_entity(result.rows[0]) if result.rows else None

    async def find_by_ids(self, ids: Sequence[int]) -> List[E]:
        """Batch fetch for loaders; rows come back in no particular order."""
        sql, params = self.builder.build({"ids": list(ids)})
        result = await self._query(sql, params, operation="batch")
        return [self.to_entity(row) for row in result.rows]

    async def find_one_by(self, column: str, value: Any) -> Optional[E]:
        """Exact-match lookup on a natural key."""
        result = await self._query(
            f"SELECT * FROM {self.table} WHERE {quote_identifier(column)} = $1 AND {self._visible()} "
            f"ORDER BY id LIMIT 1",
            [value],
            operation="single"
        )
        return self.to_entity(result.rows[0]) if result.rows else None

    async def find_all(self,
                       filters: Optional[Mapping[str, Any]] = None,
                       pagination: Optional[Pagination] = None,
                       order_by: Optional[str] = None) -> List[E]:
        sql, params = self.builder.build(filters, pagination, order_by)
        result = await self._query(sql, params, operation="list")
        return [self.to_entity(row) for row in result.rows]

    async def count(self, filters: Optional[Mapping[str, Any]] = None) -> int:
        sql, params = self.builder.build_count(filters)
        result = await self._query(sql, params, operation="count")
        return int(result.rows[0]["total"])

    async def find_page(self,
                        filters: Optional[Mapping[str, Any]] = None,
                        pagination: Optional[Pagination] = None,
                        order_by: Optional[str] = None) -> Page[E]:
        """Items plus total count for the same filters."""
        items = await self.find_all(filters, pagination, order_by)
        total = await self.count(filters)
        offset = pagination.offset if pagination and pagination.offset else 0
        return Page(items=items, total_count=total, offset=offset)

    async def child_ids_by(self, column: str, parent_ids: Sequence[int],
                           order_by: Optional[str] = None) -> Dict[int, List[int]]:
        """Map each parent id to the ordered ids of its visible rows.

        Every requested parent is present in the result, with an empty list
        when it has no children.
        """
        builder = FilteredQueryBuilder(
            self.table,
            {"parent": column},
            order_clauses=self.order_clauses,
            default_order=self.default_order,
            soft_delete_column=self.soft_delete_column,
            columns=f"id, {column} AS parent_id",
            dialect="duckdb",
        )
        sql, params = builder.build({"parent": list(parent_ids)}, order_by=order_by)
        result = await self._query(sql, params, operation="relation")

        grouped: Dict[int, List[int]] = {parent_id: [] for parent_id in parent_ids}
        for row in result.rows:
            grouped.setdefault(row["parent_id"], []).append(row["id"])
        return grouped

    def _check_columns(self, data: Mapping[str, Any]) -> None:
        unknown = [key for key in data if key not in self.writable_columns]
        if unknown:
            raise ValidationError(
                f"Cannot write column(s) {', '.join(sorted(unknown))} on {self.table}",
                field_name=unknown[0],
                context={"writable": list(self.writable_columns)}
            )

    async def create(self, data: Mapping[str, Any], tx: Optional[Transaction] = None) -> E:
        self._check_columns(data)
        columns = list(data)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        sql = (
            f"INSERT INTO {self.table} ({', '.join(quote_identifier(c) for c in columns)}) "
            f"VALUES ({placeholders}) RETURNING *"
        )
        result = await self._query(sql, [data[c] for c in columns], operation="create", tx=tx)
        entity = self.to_entity(result.rows[0])
        logger.info(f"Created {self.kind} {entity.id}")
        return entity

    async def update(self, id: int, data: Mapping[str, Any], tx: Optional[Transaction] = None) -> Optional[E]:
        self._check_columns(data)
        if not data:
            return await self.find_by_id(id) if tx is None else await self._find_in_tx(id, tx)

        columns = list(data)
        assignments = ", ".join(f"{quote_identifier(c)} = ${i}" for i, c in enumerate(columns, start=2))
        sql = (
            f"UPDATE {self.table} SET {assignments}, updated_at = CAST(current_timestamp AS TIMESTAMP) "
            f"WHERE id = $1 AND {self._visible()} RETURNING *"
        )
        result = await self._query(sql, [id] + [data[c] for c in columns], operation="update", tx=tx)
        return self.to_entity(result.rows[0]) if result.rows else None

    async def _find_in_tx(self, id: int, tx: Transaction) -> Optional[E]:
        result = await tx.execute(f"SELECT * FROM {self.table} WHERE id = $1 AND {self._visible()}", [id])
        return self.to_entity(result.rows[0]) if result.rows else None

    async def hide(self, id: int) -> bool:
        """Soft-delete a row by setting its visibility flag."""
        if not self.soft_delete_column:
            raise ValidationError(f"{self.table} has no visibility flag", field_name="hidden")
        result = await self._query(
            f"UPDATE {self.table} SET {self.soft_delete_column} = true "
            f"WHERE id = $1 AND {self._visible()} RETURNING id",
            [id],
            operation="hide"
        )
        return bool(result.rows)

    async def delete(self, id: int) -> bool:
        result = await self._query(
            f"DELETE FROM {self.table} WHERE id = $1 RETURNING id",
            [id],
            operation="delete"
        )
        return bool(result.rows)
