from typing import Optional

from ..models import Continent
from .base import BaseService


class ContinentService(BaseService[Continent]):
    table = "continents"
    entity = Continent
    filter_columns = {
        "ids": "id",
        "search": "name",
        "name": "name",
        "code": "code",
        "created_at": "created_at",
    }
    writable_columns = ("name", "slug", "code", "description", "image_url")

    async def find_by_code(self, code: str) -> Optional[Continent]:
        return await self.find_one_by("code", code.upper())
