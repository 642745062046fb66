from typing import Optional

from ..models import Country
from .base import BaseService


class CountryService(BaseService[Country]):
    table = "countries"
    entity = Country
    filter_columns = {
        "ids": "id",
        "search": "name",
        "name": "name",
        "continent_id": "continent_id",
        "iso_code": "iso_code",
        "created_at": "created_at",
    }
    writable_columns = ("continent_id", "name", "iso_code", "iso_code3", "description", "image_url")

    async def find_by_iso_code(self, iso_code: str) -> Optional[Country]:
        """Lookup by two-letter code; three-letter codes are matched too."""
        code = iso_code.upper()
        column = "iso_code3" if len(code) == 3 else "iso_code"
        return await self.find_one_by(column, code)
