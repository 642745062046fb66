import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from ..execution.executor import Transaction
from ..models import Destination, DestinationStats
from .base import BaseService, NAMED_ORDER_CLAUSES

logger = logging.getLogger(__name__)

VISIT_COUNT = "(SELECT COUNT(*) FROM visits WHERE visits.destination_id = destinations.id)"
AVERAGE_RATING = "(SELECT AVG(rating) FROM visits WHERE visits.destination_id = destinations.id)"


class DestinationService(BaseService[Destination]):
    """Destinations, their category links and visit aggregates."""

    table = "destinations"
    entity = Destination
    filter_columns = {
        "ids": "id",
        "search": "name",
        "name": "name",
        "slug": "slug",
        "country_id": "country_id",
        "type_id": "type_id",
        "continent_id": "(SELECT continent_id FROM countries WHERE countries.id = destinations.country_id)",
        "latitude": "latitude",
        "longitude": "longitude",
        "created_at": "created_at",
    }
    order_clauses = {
        **NAMED_ORDER_CLAUSES,
        "VISITS_DESC": f"{VISIT_COUNT} DESC, id ASC",
        "RATING_DESC": f"{AVERAGE_RATING} DESC NULLS LAST, id ASC",
        "POPULARITY": f"{VISIT_COUNT} * 0.7 + COALESCE({AVERAGE_RATING}, 0) * 0.3 DESC, id ASC",
    }
    writable_columns = ("country_id", "type_id", "name", "slug", "description", "latitude", "longitude", "image_url")

    async def find_by_slug(self, slug: str) -> Optional[Destination]:
        return await self.find_one_by("slug", slug)

    async def create(self,
                     data: Mapping[str, Any],
                     tx: Optional[Transaction] = None,
                     category_ids: Optional[Sequence[int]] = None) -> Destination:
        """Insert a destination and its category links in one transaction."""
        if tx is not None:
            return await self._create_in(tx, data, category_ids)
        async with self.executor.transaction() as tx:
            return await self._create_in(tx, data, category_ids)

    async def _create_in(self, tx: Transaction, data: Mapping[str, Any],
                         category_ids: Optional[Sequence[int]]) -> Destination:
        destination = await super().create(data, tx)
        if category_ids:
            await self._link_categories(tx, destination.id, category_ids)
        return destination

    async def update(self,
                     id: int,
                     data: Mapping[str, Any],
                     tx: Optional[Transaction] = None,
                     category_ids: Optional[Sequence[int]] = None) -> Optional[Destination]:
        """Update columns and, when ``category_ids`` is given, replace the links.

        Both writes commit together or not at all.
        """
        if tx is not None:
            return await self._update_in(tx, id, data, category_ids)
        async with self.executor.transaction() as tx:
            return await self._update_in(tx, id, data, category_ids)

    async def _update_in(self, tx: Transaction, id: int, data: Mapping[str, Any],
                         category_ids: Optional[Sequence[int]]) -> Optional[Destination]:
        destination = await super().update(id, data, tx)
        if destination is None:
            return None
        if category_ids is not None:
            await tx.execute("DELETE FROM destination_categories WHERE destination_id = $1", [id])
            await self._link_categories(tx, id, category_ids)
        return destination

    async def _link_categories(self, tx: Transaction, destination_id: int, category_ids: Sequence[int]) -> None:
        for category_id in dict.fromkeys(category_ids):
            await tx.execute(
                "INSERT INTO destination_categories (destination_id, category_id) VALUES ($1, $2)",
                [destination_id, category_id]
            )
        logger.debug(f"Linked destination {destination_id} to {len(category_ids)} category(ies)")

    async def stats_by_ids(self, ids: Sequence[int]) -> Dict[int, DestinationStats]:
        """Visit count and average rating per destination; unvisited ones get zeroes."""
        stats = {id: DestinationStats(destination_id=id) for id in ids}
        if not stats:
            return stats

        result = await self._query(
            "SELECT destination_id, COUNT(*) AS visit_count, AVG(rating) AS average_rating\n"
            "FROM visits\n"
            "WHERE list_contains($1, destination_id)\n"
            "GROUP BY destination_id",
            [list(stats)],
            operation="aggregate"
        )
        for row in result.rows:
            stats[row["destination_id"]] = DestinationStats(
                destination_id=row["destination_id"],
                visit_count=int(row["visit_count"]),
                average_rating=float(row["average_rating"]) if row["average_rating"] is not None else None
            )
        return stats
