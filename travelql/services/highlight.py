from typing import Optional

from ..models import Highlight
from .base import BaseService


class HighlightService(BaseService[Highlight]):
    table = "highlights"
    entity = Highlight
    filter_columns = {
        "ids": "id",
        "search": "name",
        "name": "name",
        "destination_id": "destination_id",
        "created_at": "created_at",
    }
    writable_columns = ("destination_id", "name", "slug", "description", "latitude", "longitude", "image_url")

    async def find_by_slug(self, slug: str) -> Optional[Highlight]:
        return await self.find_one_by("slug", slug)
