from typing import Any, Mapping, Optional

from ..exceptions import ValidationError
from ..execution.executor import Transaction
from ..models import Visit
from .base import BaseService

MIN_RATING = 1
MAX_RATING = 5


class VisitService(BaseService[Visit]):
    """Visits are hard-deleted; they carry no visibility flag."""

    table = "visits"
    entity = Visit
    filter_columns = {
        "ids": "id",
        "user_id": "user_id",
        "destination_id": "destination_id",
        "rating": "rating",
        "visited_at": "visited_at",
        "search": "notes",
    }
    order_clauses = {
        "VISITED_AT_DESC": "visited_at DESC, id DESC",
        "VISITED_AT_ASC": "visited_at ASC, id ASC",
        "RATING_DESC": "rating DESC NULLS LAST, id ASC",
        "CREATED_AT_ASC": "created_at ASC, id ASC",
        "CREATED_AT_DESC": "created_at DESC, id DESC",
    }
    default_order = "visited_at DESC, id DESC"
    soft_delete_column = None
    writable_columns = ("user_id", "destination_id", "visited_at", "rating", "notes")

    @staticmethod
    def _check_rating(data: Mapping[str, Any]) -> None:
        rating = data.get("rating")
        if rating is not None and not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                f"Rating must be between {MIN_RATING} and {MAX_RATING}",
                field_name="rating",
                expected_type=f"int {MIN_RATING}..{MAX_RATING}",
                actual_value=rating
            )

    async def create(self, data: Mapping[str, Any], tx: Optional[Transaction] = None) -> Visit:
        self._check_rating(data)
        return await super().create(data, tx)

    async def update(self, id: int, data: Mapping[str, Any], tx: Optional[Transaction] = None) -> Optional[Visit]:
        self._check_rating(data)
        return await super().update(id, data, tx)
