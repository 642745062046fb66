from typing import List, Optional, Sequence

from ..models import Language
from .base import BaseService


class LanguageService(BaseService[Language]):
    table = "languages"
    entity = Language
    filter_columns = {
        "ids": "id",
        "search": "name",
        "name": "name",
        "code": "code",
    }
    soft_delete_column = None

    async def find_by_code(self, code: str) -> Optional[Language]:
        return await self.find_one_by("code", code.strip().lower())

    async def find_by_codes(self, codes: Sequence[str]) -> List[Language]:
        """Batch fetch keyed by code, used to resolve user locales."""
        return await self.find_all({"code": list(codes)})
