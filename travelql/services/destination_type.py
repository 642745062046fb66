from typing import Optional

from ..models import DestinationType
from .base import BaseService


class DestinationTypeService(BaseService[DestinationType]):
    """Destination kinds such as city or coast. Rows are never hidden."""

    table = "destination_types"
    entity = DestinationType
    filter_columns = {
        "ids": "id",
        "search": "name",
        "name": "name",
    }
    soft_delete_column = None

    async def find_by_name(self, name: str) -> Optional[DestinationType]:
        return await self.find_one_by("name", name.strip())
