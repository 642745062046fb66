import logging
from typing import Dict, List, Sequence

from ..models import Category
from .base import BaseService

logger = logging.getLogger(__name__)


class CategoryService(BaseService[Category]):
    """Categories and the destination link table."""

    table = "categories"
    entity = Category
    filter_columns = {
        "ids": "id",
        "search": "name",
        "name": "name",
        "created_at": "created_at",
    }
    writable_columns = ("name", "description")

    async def category_ids_by_destination(self, destination_ids: Sequence[int]) -> Dict[int, List[int]]:
        """Visible category ids linked to each destination, by category name."""
        grouped: Dict[int, List[int]] = {id: [] for id in destination_ids}
        if not grouped:
            return grouped

        result = await self._query(
            "SELECT dc.destination_id AS parent_id, c.id AS id\n"
            "FROM destination_categories dc\n"
            "JOIN categories c ON c.id = dc.category_id\n"
            "WHERE list_contains($1, dc.destination_id) AND c.hidden = false\n"
            "ORDER BY c.name ASC, c.id ASC",
            [list(grouped)],
            operation="relation"
        )
        for row in result.rows:
            grouped[row["parent_id"]].append(row["id"])
        return grouped

    async def destination_ids_by_category(self, category_ids: Sequence[int]) -> Dict[int, List[int]]:
        """Visible destination ids linked to each category, by destination name."""
        grouped: Dict[int, List[int]] = {id: [] for id in category_ids}
        if not grouped:
            return grouped

        result = await self._query(
            "SELECT dc.category_id AS parent_id, d.id AS id\n"
            "FROM destination_categories dc\n"
            "JOIN destinations d ON d.id = dc.destination_id\n"
            "WHERE list_contains($1, dc.category_id) AND d.hidden = false\n"
            "ORDER BY d.name ASC, d.id ASC",
            [list(grouped)],
            operation="relation"
        )
        for row in result.rows:
            grouped[row["parent_id"]].append(row["id"])
        return grouped
